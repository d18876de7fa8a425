import sys
import time
import pytest
from viewdeb_core.errors import CommandExitError, CommandSpawnError, CommandTimeout
from viewdeb_core.utils.shell import CommandRunner


def test_returns_stdout():
    out = CommandRunner().run(sys.executable, ["-c", "print('hello')"], 10000)
    assert out.strip() == "hello"


def test_env_overrides_are_merged():
    code = "import os; print(os.environ['LC_ALL'], 'PATH' in os.environ)"
    out = CommandRunner().run(sys.executable, ["-c", code], 10000, env={"LC_ALL": "C"})
    assert out.split() == ["C", "True"]


def test_non_zero_exit():
    code = "import sys; sys.stderr.write('bad input'); sys.exit(3)"
    with pytest.raises(CommandExitError) as e:
        CommandRunner().run(sys.executable, ["-c", code], 10000)
    assert e.value.exit_code == 3
    assert e.value.stderr == "bad input"
    assert e.value.details["exit_code"] == 3


def test_spawn_failure():
    with pytest.raises(CommandSpawnError) as e:
        CommandRunner().run("/nonexistent/viewdeb-tool", [], 1000)
    assert e.value.command == "/nonexistent/viewdeb-tool"


def test_timeout_kills_child():
    start = time.monotonic()
    with pytest.raises(CommandTimeout) as e:
        CommandRunner().run(sys.executable, ["-c", "import time; time.sleep(30)"], 200)
    assert e.value.timeout_ms == 200
    assert time.monotonic() - start < 10


def test_undecodable_output_is_replaced():
    code = "import sys; sys.stdout.buffer.write(b'ok\\xff')"
    out = CommandRunner().run(sys.executable, ["-c", code], 10000)
    assert out == "ok�"

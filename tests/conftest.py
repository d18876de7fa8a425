import os
import pytest
from pathlib import Path
from typing import Dict, List, Optional, Union

from fastapi.testclient import TestClient

from viewdeb_core.config import AnalysisConfig, ViewdebConfig
from viewdeb_core.errors import CommandExitError
from viewdeb_core.pipeline import PackageInspector
from viewdeb_core.utils.shell import CommandRunner

FIXTURES = Path(__file__).resolve().parent / "fixtures"

CONTROL_TEXT = """Package: hello
Version: 2.10-3
Architecture: amd64
Maintainer: Santiago Vila <sanvila@debian.org>
Installed-Size: 280
Depends: libc6 (>= 2.34)
Section: devel
Priority: optional
Homepage: https://www.gnu.org/software/hello/
Description: example package based on GNU hello
 The GNU hello program produces a familiar, friendly greeting.
 .
 Seriously, though: this is an example.
"""

SYMLINK = object()

# payload path -> file content, None for a directory, SYMLINK for a link
DEFAULT_PAYLOAD: Dict[str, object] = {
    "usr": None,
    "usr/bin": None,
    "usr/bin/hello": b"\x7fELF\x02\x01\x01" + b"\x00" * 57,
    "usr/share": None,
    "usr/share/applications": None,
    "usr/share/applications/hello.desktop": (
        "[Desktop Entry]\nName=Hello\nExec=hello %U\nCategories=Utility;\n"
        "[Desktop Action New]\nName=New Greeting\n"
    ),
    "usr/share/doc": None,
    "usr/share/doc/hello": None,
    "usr/share/doc/hello/copyright": "Copyright (C) 1992 Free Software Foundation\n",
    "usr/bin/hi": SYMLINK,
}

DEFAULT_CONTROL = {
    "control": CONTROL_TEXT,
    "md5sums": "5d41402abc4b2a76b9719d911017c592  usr/bin/hello\n",
    "postinst": "#!/bin/sh\nset -e\n",
}


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text()


def default_readelf() -> Dict[str, Union[str, Exception]]:
    return {
        "-h": read_fixture("readelf_header.txt"),
        "-l": read_fixture("readelf_program_headers.txt"),
        "-S": read_fixture("readelf_sections.txt"),
        "-d": read_fixture("readelf_dynamic.txt"),
    }


class FakeRunner(CommandRunner):
    """
    Stands in for dpkg and readelf. ``dpkg -x`` materialises ``payload``,
    ``dpkg -e`` writes ``control`` files and readelf answers from ``readelf``
    keyed by flag. An Exception value is raised instead of returned.
    """

    def __init__(
        self,
        payload: Optional[Dict[str, object]] = None,
        control: Optional[Dict[str, str]] = None,
        readelf: Optional[Dict[str, Union[str, Exception]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.payload = DEFAULT_PAYLOAD if payload is None else payload
        self.control = DEFAULT_CONTROL if control is None else control
        self.readelf = default_readelf() if readelf is None else readelf
        self.failures = failures or {}
        self.calls: List[tuple] = []

    def run(self, command, args, timeout_ms, env=None):
        self.calls.append((command, list(args), timeout_ms, env))
        key = f"{command} {args[0]}"
        if key in self.failures:
            raise self.failures[key]

        if command == "dpkg" and args[0] == "-x":
            self._write_payload(args[2])
            return ""
        if command == "dpkg" and args[0] == "-e":
            for name, text in self.control.items():
                Path(args[2], name).write_text(text)
            return ""
        if command == "readelf":
            result = self.readelf.get(args[0], "")
            if isinstance(result, Exception):
                raise result
            return result
        raise CommandExitError(command, 127, "unexpected command")

    def _write_payload(self, root: str):
        for rel_path, content in self.payload.items():
            target = Path(root, rel_path)
            if content is None:
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if content is SYMLINK:
                os.symlink("hello", target)
            elif isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content)


@pytest.fixture
def config(tmp_path) -> ViewdebConfig:
    return ViewdebConfig(analysis=AnalysisConfig(scratch_root=str(tmp_path / "scratch"), workers=2))


@pytest.fixture
def package_file(tmp_path) -> str:
    path = tmp_path / "hello_2.10-3_amd64.deb"
    path.write_bytes(b"!<arch>\n" + b"\x00" * 1024)
    return str(path)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def inspector(config, fake_runner) -> PackageInspector:
    return PackageInspector(config=config, runner=fake_runner)


@pytest.fixture
def client():
    from viewdeb_server.main import app
    with TestClient(app) as c:
        yield c

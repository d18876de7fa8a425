"""Run external tools with a deadline and captured output."""
import os
import logging
import subprocess
from typing import Dict, List, Optional

from ..errors import CommandExitError, CommandSpawnError, CommandTimeout

logger = logging.getLogger(__name__)


class CommandRunner:
    """
    Spawns a command, waits for it up to ``timeout_ms`` and returns stdout.

    Raises CommandExitError on a non-zero exit, CommandSpawnError when the
    executable cannot be started and CommandTimeout when the deadline
    passes. A timed out child is killed and reaped before raising.
    """

    def run(
        self,
        command: str,
        args: List[str],
        timeout_ms: int,
        env: Optional[Dict[str, str]] = None,
    ) -> str:
        argv = [command] + list(args)
        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        logger.debug(f"Running {' '.join(argv)} (timeout {timeout_ms}ms)")
        try:
            proc = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                env=run_env,
            )
        except OSError as e:
            raise CommandSpawnError(f"Command failed: {e}", command) from e

        try:
            stdout, stderr = proc.communicate(timeout=timeout_ms / 1000.0)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.communicate()
            raise CommandTimeout(command, timeout_ms)

        if proc.returncode != 0:
            raise CommandExitError(command, proc.returncode, stderr.decode("utf-8", errors="replace"))

        return stdout.decode("utf-8", errors="replace")

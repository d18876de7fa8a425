"""
Error taxonomy for the package inspection pipeline.

Every error carries a human readable message (``str(err)``), a stable
machine readable ``code`` and an optional ``details`` dict that the HTTP
layer passes through to clients.
"""
from typing import Any, Dict, Optional


class ViewdebError(Exception):
    code = "VIEWDEB_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            data["details"] = self.details
        return data


# ─── Fatal pipeline errors ──────────────────────────────────────────────
class InvalidInput(ViewdebError):
    code = "INVALID_FILE_TYPE"


class SizeLimitExceeded(ViewdebError):
    code = "FILE_TOO_LARGE"


class ExtractionFailed(ViewdebError):
    """Raised when one of the unpack steps fails.

    ``stage`` is ``"data"`` for the payload unpack and ``"control"`` for the
    control unpack; ``cause`` is the underlying command error.
    """

    code = "EXTRACT_ERROR"

    def __init__(self, stage: str, cause: Exception):
        message = (
            "Failed to extract package data"
            if stage == "data"
            else "Failed to extract control information"
        )
        details: Dict[str, Any] = {"stage": stage, "cause": str(cause)}
        if isinstance(cause, CommandExitError):
            details["exit_code"] = cause.exit_code
            details["stderr"] = cause.stderr
        super().__init__(
            f"{message}: {cause}",
            code="EXTRACT_ERROR" if stage == "data" else "CONTROL_EXTRACT_ERROR",
            details=details,
        )
        self.stage = stage
        self.cause = cause


class ControlReadError(ViewdebError):
    code = "CONTROL_READ_ERROR"


class WalkError(ViewdebError):
    code = "WALK_ERROR"


# ─── Local (best-effort) errors ─────────────────────────────────────────
class ExternalToolError(ViewdebError):
    code = "EXTERNAL_TOOL_ERROR"


class ReadError(ViewdebError):
    code = "READ_ERROR"


# ─── Command runner errors ──────────────────────────────────────────────
class CommandError(ViewdebError):
    code = "COMMAND_ERROR"

    def __init__(self, message: str, command: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.command = command


class CommandExitError(CommandError):
    code = "COMMAND_EXIT"

    def __init__(self, command: str, exit_code: int, stderr: str):
        super().__init__(
            f"Command exited with code {exit_code}: {stderr.strip()}",
            command,
            details={"exit_code": exit_code, "stderr": stderr},
        )
        self.exit_code = exit_code
        self.stderr = stderr


class CommandSpawnError(CommandError):
    code = "COMMAND_SPAWN"


class CommandTimeout(CommandError):
    code = "COMMAND_TIMEOUT"

    def __init__(self, command: str, timeout_ms: int):
        super().__init__(f"Command timed out after {timeout_ms}ms", command, details={"timeout_ms": timeout_ms})
        self.timeout_ms = timeout_ms

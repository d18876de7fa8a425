"""
ELF summaries built from ``readelf`` output.

Each readelf listing is parsed by a pure function so the parsing can be
exercised against captured text without the tool installed. The block
parsers share a two-state scanner: SEEKING until a block marker is seen,
IN_BLOCK while the block's rows are collected.
"""
import re
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..config import settings
from ..errors import CommandError, ExternalToolError
from ..models.package_info import ELFInfo
from ..utils.shell import CommandRunner

logger = logging.getLogger(__name__)

# readelf labels are localised; pin them.
LOCALE_ENV = {"LC_ALL": "C"}

SECTION_ROW = re.compile(r"^\[\s*\d+\]")
INTERP_PREFIX = "Requesting program interpreter:"
# first tokens of the two-line column header of readelf -l
PROGRAM_COLUMNS = ("Type", "FileSiz")


class ScanState(Enum):
    SEEKING = "seeking"
    IN_BLOCK = "in_block"


def _bracketed(text: str, start: int = 0) -> Optional[str]:
    open_pos = text.find("[", start)
    if open_pos == -1:
        return None
    close_pos = text.find("]", open_pos + 1)
    if close_pos == -1:
        return None
    return text[open_pos + 1:close_pos]


def parse_header(output: str) -> Dict[str, str]:
    """Pulls type, machine and entry point out of ``readelf -h``."""
    fields: Dict[str, str] = {}
    for line in output.splitlines():
        if "Type:" in line:
            fields["type"] = line.partition(":")[2].strip()
        if "Machine:" in line:
            fields["machine"] = line.partition(":")[2].strip()
        if "Entry point" in line:
            fields["entry"] = line.partition(":")[2].strip()
    return fields


def parse_program_headers(output: str) -> Tuple[List[str], Optional[str]]:
    """
    Parses ``readelf -l``.

    Returns the program header rows and the interpreter path, if the
    binary requests one.
    """
    rows: List[str] = []
    state = ScanState.SEEKING

    for line in output.splitlines():
        stripped = line.strip()
        tokens = stripped.split()
        if "Program Headers:" in line or (tokens and tokens[0] in PROGRAM_COLUMNS):
            state = ScanState.IN_BLOCK
            continue
        if state is not ScanState.IN_BLOCK or not stripped:
            continue
        # a flush-left line or an indented heading such as
        # " Section to Segment mapping:" closes the block
        if not line[0].isspace() or stripped.endswith(":"):
            state = ScanState.SEEKING
            continue
        rows.append(line)

    interpreter = None
    interp_pos = output.find("INTERP")
    if interp_pos != -1:
        token = _bracketed(output, interp_pos)
        if token is not None:
            if token.startswith(INTERP_PREFIX):
                token = token[len(INTERP_PREFIX):]
            interpreter = token.strip()

    return rows, interpreter


def parse_section_headers(output: str) -> List[str]:
    """Parses ``readelf -S``, keeping one row per section."""
    rows: List[str] = []
    state = ScanState.SEEKING

    for line in output.splitlines():
        stripped = line.strip()
        if "Section Headers:" in line or "Nr]" in line:
            state = ScanState.IN_BLOCK
            continue
        if state is not ScanState.IN_BLOCK or not stripped:
            continue
        if not line[0].isspace():
            state = ScanState.SEEKING
            continue
        # wrapped continuation rows carry no "[N]" index
        if SECTION_ROW.match(stripped):
            rows.append(line)

    return rows


def parse_dynamic(output: str) -> Optional[List[str]]:
    """Returns the NEEDED libraries from ``readelf -d``, or None if there are none."""
    needed = []
    for line in output.splitlines():
        if "NEEDED" in line:
            lib = _bracketed(line)
            if lib is not None:
                needed.append(lib)
    return needed or None


class ElfAnalyzer:
    """Runs readelf against one binary and assembles an ELFInfo."""

    def __init__(self, runner: Optional[CommandRunner] = None, timeout_ms: Optional[int] = None):
        self.runner = runner or CommandRunner()
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.timeouts.readelf

    def analyze(self, file_path: str) -> ELFInfo:
        """
        Only the header dump is required; a failure there raises
        ExternalToolError. The other three listings are best-effort and leave
        their fields at the defaults when readelf fails.
        """
        try:
            header = self._readelf("-h", file_path)
        except CommandError as e:
            raise ExternalToolError(f"Failed to read ELF header: {e}") from e

        fields = parse_header(header)

        program_headers: List[str] = []
        interpreter = None
        ph_output = self._readelf_optional("-l", file_path)
        if ph_output is not None:
            program_headers, interpreter = parse_program_headers(ph_output)

        section_headers: List[str] = []
        sh_output = self._readelf_optional("-S", file_path)
        if sh_output is not None:
            section_headers = parse_section_headers(sh_output)

        dependencies = None
        dyn_output = self._readelf_optional("-d", file_path)
        if dyn_output is not None:
            dependencies = parse_dynamic(dyn_output)

        return ELFInfo(
            elf_type=fields.get("type") or "unknown",
            machine=fields.get("machine") or "unknown",
            entry=fields.get("entry") or "0x0",
            program_headers=program_headers,
            section_headers=section_headers,
            dependencies=dependencies,
            interpreter=interpreter,
        )

    def _readelf(self, flag: str, file_path: str) -> str:
        return self.runner.run("readelf", [flag, file_path], self.timeout_ms, env=LOCALE_ENV)

    def _readelf_optional(self, flag: str, file_path: str) -> Optional[str]:
        try:
            return self._readelf(flag, file_path)
        except CommandError as e:
            logger.debug(f"readelf {flag} failed for {file_path}: {e}")
            return None

import os
import stat
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..core.base_extractor import BaseExtractor
from ..config import settings, TimeoutConfig
from ..errors import CommandError, ControlReadError, ExtractionFailed, ReadError, WalkError
from ..models.package_info import (
    ControlFiles, FileContent, FileEntry, FileType, PackageMetadata, Scripts, SCRIPT_NAMES,
)
from ..utils.shell import CommandRunner
from .classifier import BinaryClassifier, PathHeuristicClassifier, is_desktop_file

logger = logging.getLogger(__name__)

# control field name -> PackageMetadata attribute
CONTROL_FIELDS = {name: attr for attr, name in PackageMetadata.FIELD_NAMES.items()}

BINARY_SNIFF_BYTES = 8192
BINARY_NUL_WINDOW = 512


def parse_control(content: str) -> PackageMetadata:
    """
    Parses the text of a Debian ``control`` file.

    Lenient: unknown fields are ignored, missing required fields
    stay empty and no input makes it raise. Only ``Description`` spans
    several lines; continuation lines of other fields are dropped.
    """
    values: Dict[str, str] = {}
    current_key = ""

    for line in content.splitlines():
        stripped = line.strip()

        if not stripped:
            current_key = ""
            continue

        if line[0] in (" ", "\t"):
            if current_key == "Description" and "description" in values:
                values["description"] += "\n" + stripped
            continue

        if ":" not in line:
            continue

        key, _, value = line.partition(":")
        key = key.strip()
        current_key = key
        attr = CONTROL_FIELDS.get(key)
        if attr:
            values[attr] = value.strip()

    return PackageMetadata(**values)


def _format_mtime(st: os.stat_result) -> str:
    try:
        mtime_ns = st.st_mtime_ns
    except AttributeError:
        return ""
    if mtime_ns < 0:
        return ""
    return str(mtime_ns // 1_000_000)


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError):
        return None


class DebExtractor(BaseExtractor):
    """
    Extractor for Debian binary packages (.deb / .udeb).

    Unpacking is delegated to ``dpkg``; everything else works on the
    unpacked scratch tree.
    """

    name = "Debian"
    supported_extensions = (".deb", ".udeb")

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        classifier: Optional[BinaryClassifier] = None,
        timeouts: Optional[TimeoutConfig] = None,
        extensions: Optional[Sequence[str]] = None,
    ):
        self.runner = runner or CommandRunner()
        self.classifier = classifier or PathHeuristicClassifier()
        self.timeouts = timeouts or settings.timeouts
        if extensions is not None:
            self.supported_extensions = tuple(extensions)

    # --- Extraction ---

    def extract(self, scratch_dir: str, package_path: str) -> None:
        extract_path = os.path.join(scratch_dir, "extracted")
        control_path = os.path.join(scratch_dir, "control")
        os.makedirs(extract_path, exist_ok=True)
        os.makedirs(control_path, exist_ok=True)

        try:
            self.runner.run("dpkg", ["-x", package_path, extract_path], self.timeouts.extract_data)
        except CommandError as e:
            raise ExtractionFailed("data", e) from e

        # Control data is always small, hence the shorter budget.
        try:
            self.runner.run("dpkg", ["-e", package_path, control_path], self.timeouts.extract_control)
        except CommandError as e:
            raise ExtractionFailed("control", e) from e

    # --- Control metadata ---

    def parse_metadata(self, control_dir: str) -> PackageMetadata:
        control_file = os.path.join(control_dir, "control")
        try:
            with open(control_file, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            raise ControlReadError(f"Failed to read control file: {e}") from e
        return parse_control(content)

    def parse_scripts(self, control_dir: str) -> Scripts:
        if not os.path.isdir(control_dir):
            raise ReadError(f"Control directory not found: {control_dir}")

        scripts = {}
        for script_name in SCRIPT_NAMES:
            content = _read_text(os.path.join(control_dir, script_name))
            if content is not None:
                scripts[script_name] = content
        return Scripts(**scripts)

    def read_control_files(self, extract_dir: str, control_dir: str) -> ControlFiles:
        try:
            with open(os.path.join(control_dir, "control"), "r", encoding="utf-8", errors="replace") as f:
                control = f.read()
        except OSError as e:
            raise ControlReadError(f"Failed to read control file: {e}") from e

        return ControlFiles(
            control=control,
            md5sums=self._read_optional_control(extract_dir, control_dir, "md5sums"),
            conffiles=self._read_optional_control(extract_dir, control_dir, "conffiles"),
        )

    def _read_optional_control(self, extract_dir: str, control_dir: str, name: str) -> Optional[str]:
        for candidate in (os.path.join(control_dir, name), os.path.join(extract_dir, "DEBIAN", name)):
            if os.path.isfile(candidate):
                content = _read_text(candidate)
                if content is not None:
                    return content
        return None

    # --- Manifest ---

    def list_files(self, extract_dir: str) -> List[FileEntry]:
        try:
            root_entries = self._scan(extract_dir)
        except OSError as e:
            raise WalkError(f"Failed to read extracted files: {e}") from e

        files: List[FileEntry] = []
        # Pre-order walk; each frame is (relative prefix, remaining siblings).
        stack: List[Tuple[str, Iterator[os.DirEntry]]] = [("", iter(root_entries))]
        while stack:
            prefix, entries = stack[-1]
            entry = next(entries, None)
            if entry is None:
                stack.pop()
                continue

            rel_path = prefix + entry.name
            try:
                if entry.is_symlink():
                    continue
                st = entry.stat(follow_symlinks=False)
            except OSError as e:
                logger.debug(f"Skipping {rel_path}: {e}")
                continue

            if stat.S_ISDIR(st.st_mode):
                files.append(self._make_entry(rel_path, st, FileType.DIRECTORY))
                try:
                    children = self._scan(entry.path)
                except OSError as e:
                    logger.debug(f"Not descending into {rel_path}: {e}")
                    continue
                stack.append((rel_path + "/", iter(children)))
            elif stat.S_ISREG(st.st_mode):
                files.append(self._classify(rel_path, entry.path, st))
            else:
                files.append(self._make_entry(rel_path, st, FileType.FILE))

        return files

    def _scan(self, directory: str) -> List[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)

    def _classify(self, rel_path: str, full_path: str, st: os.stat_result) -> FileEntry:
        is_elf = self.classifier.is_likely_elf(rel_path, full_path)
        is_desktop = is_desktop_file(rel_path)
        if is_elf:
            file_type = FileType.ELF
        elif is_desktop:
            file_type = FileType.DESKTOP
        else:
            file_type = FileType.FILE
        return self._make_entry(rel_path, st, file_type, is_elf, is_desktop)

    def _make_entry(
        self,
        rel_path: str,
        st: os.stat_result,
        file_type: FileType,
        is_elf: bool = False,
        is_desktop: bool = False,
    ) -> FileEntry:
        return FileEntry(
            path=rel_path,
            size=st.st_size,
            mode=f"{stat.S_IMODE(st.st_mode):04o}",
            mtime=_format_mtime(st),
            file_type=file_type,
            is_elf=is_elf,
            is_desktop=is_desktop,
        )

    # --- Content preview ---

    def read_file_content(self, file_path: str, max_lines: int) -> FileContent:
        try:
            size = os.path.getsize(file_path)
            with open(file_path, "rb") as f:
                head = f.read(min(size, BINARY_SNIFF_BYTES))

            if b"\x00" in head[:BINARY_NUL_WINDOW]:
                return FileContent(path=file_path, content="<binary file>", is_text=False, is_truncated=False, size=size)

            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            raise ReadError(f"Failed to read file content: {e}") from e

        lines = content.split("\n")
        if len(lines) <= max_lines:
            return FileContent(path=file_path, content=content, is_text=True, is_truncated=False, size=size)

        truncated = "\n".join(lines[:max_lines]) + (
            f"\n\n... ({len(lines) - max_lines} more lines truncated, total {len(lines)} lines)"
        )
        return FileContent(path=file_path, content=truncated, is_text=True, is_truncated=True, size=size)

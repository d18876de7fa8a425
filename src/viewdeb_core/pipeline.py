"""
Package inspection pipeline.

Drives extraction, metadata parsing, the manifest walk and the per-file
ELF / desktop enrichment, and assembles the final Report. Structural steps
are required and their errors propagate; enrichment steps are best-effort
and a failure only drops that entry from the report.
"""
import os
import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from .config import settings, ViewdebConfig
from .core.context import AnalysisContext
from .errors import InvalidInput, ReadError, SizeLimitExceeded, ViewdebError
from .extractors.classifier import BinaryClassifier
from .extractors.deb import DebExtractor
from .extractors.desktop import read_desktop_entry
from .extractors.elf import ElfAnalyzer
from .models.package_info import (
    ELFInfo, FileContent, FileEntry, FileType, ParseStats, Report, Scripts,
)
from .utils.shell import CommandRunner

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PackageInspector:
    def __init__(
        self,
        config: Optional[ViewdebConfig] = None,
        runner: Optional[CommandRunner] = None,
        classifier: Optional[BinaryClassifier] = None,
    ):
        self.config = config or settings
        self.runner = runner or CommandRunner()
        self.extractor = DebExtractor(
            self.runner, classifier, self.config.timeouts, self.config.limits.allowed_extensions
        )
        self.elf_analyzer = ElfAnalyzer(self.runner, self.config.timeouts.readelf)

    # --- Public entry points ---

    def inspect(self, package_path: str) -> Report:
        start = time.monotonic()
        original_size = self.validate(package_path)

        with self._context() as context:
            self.extractor.extract(context.scratch_dir, package_path)
            extract_path = context.extract_path
            control_path = context.control_path

            metadata = self.extractor.parse_metadata(control_path)
            files = self.extractor.list_files(extract_path)
            scripts = self._parse_scripts(control_path)
            control_files = self.extractor.read_control_files(extract_path, control_path)

            elf_info, desktop_info = self._enrich(extract_path, files)

            stats = ParseStats(
                parse_time=int((time.monotonic() - start) * 1000),
                original_size=original_size,
                extracted_size=sum(f.size for f in files if f.file_type != FileType.DIRECTORY),
                file_count=len(files),
                elf_count=sum(1 for f in files if f.is_elf),
                desktop_count=sum(1 for f in files if f.is_desktop),
            )

        logger.info(
            f"Inspected {metadata.package or package_path}: {stats.file_count} files, "
            f"{len(elf_info)} ELF analyzed, {len(desktop_info)} desktop entries in {stats.parse_time}ms"
        )
        return Report(
            metadata=metadata,
            files=files,
            control_files=control_files,
            stats=stats,
            scripts=scripts,
            elf_info=elf_info or None,
            desktop_info=desktop_info or None,
        )

    def read_file(self, package_path: str, relative_path: str, max_lines: Optional[int] = None) -> FileContent:
        """Unpacks the package and previews one payload file."""
        if max_lines is None:
            max_lines = self.config.analysis.preview_max_lines
        self.validate(package_path)

        with self._context() as context:
            self.extractor.extract(context.scratch_dir, package_path)
            root = os.path.realpath(context.extract_path)
            target = os.path.realpath(os.path.join(root, relative_path.lstrip("/")))
            if os.path.commonpath([root, target]) != root:
                raise InvalidInput(f"Path escapes the package root: {relative_path}", code="INVALID_PATH")
            if not os.path.isfile(target):
                raise ReadError(f"No such file in package: {relative_path}", details={"path": relative_path})

            content = self.extractor.read_file_content(target, max_lines)
            return FileContent(
                path=relative_path.lstrip("/"),
                content=content.content,
                is_text=content.is_text,
                is_truncated=content.is_truncated,
                size=content.size,
            )

    def validate(self, package_path: str) -> int:
        """Checks extension, existence and size; returns the size in bytes."""
        limits = self.config.limits
        if not self.extractor.supports(package_path):
            raise InvalidInput(
                f"Invalid file type. Only {', '.join(limits.allowed_extensions)} files are supported",
                details={"filename": os.path.basename(package_path)},
            )
        if not os.path.isfile(package_path):
            raise InvalidInput("File does not exist", code="FILE_NOT_FOUND", details={"path": package_path})

        size = os.path.getsize(package_path)
        if size > limits.max_package_size:
            raise SizeLimitExceeded(
                f"File size exceeds {limits.max_package_size // (1024 * 1024)}MB limit",
                details={"size": size, "limit": limits.max_package_size},
            )
        return size

    # --- Internals ---

    def _context(self) -> AnalysisContext:
        analysis = self.config.analysis
        return AnalysisContext(prefix=analysis.scratch_prefix, root=analysis.scratch_root)

    def _parse_scripts(self, control_path: str) -> Optional[Scripts]:
        try:
            scripts = self.extractor.parse_scripts(control_path)
        except (ViewdebError, OSError) as e:
            logger.warning(f"Maintainer scripts unavailable: {e}")
            return None
        return None if scripts.is_empty() else scripts

    def _enrich(
        self, extract_path: str, files: List[FileEntry]
    ) -> Tuple[Dict[str, ELFInfo], Dict[str, Dict[str, str]]]:
        elf_targets = [f.path for f in files if f.is_elf][: self.config.limits.max_elf_analysis]
        desktop_targets = [f.path for f in files if f.is_desktop]

        with ThreadPoolExecutor(max_workers=max(1, self.config.analysis.workers)) as pool:
            elf_futures = [
                (path, pool.submit(self._best_effort, self.elf_analyzer.analyze, extract_path, path))
                for path in elf_targets
            ]
            desktop_futures = [
                (path, pool.submit(self._best_effort, read_desktop_entry, extract_path, path))
                for path in desktop_targets
            ]
            # merged in manifest order, whatever order the workers finish in
            elf_info = {path: fut.result() for path, fut in elf_futures if fut.result() is not None}
            desktop_info = {path: fut.result() for path, fut in desktop_futures if fut.result() is not None}

        return elf_info, desktop_info

    def _best_effort(self, analyze: Callable[[str], T], extract_path: str, rel_path: str) -> Optional[T]:
        try:
            return analyze(os.path.join(extract_path, rel_path))
        except (ViewdebError, OSError) as e:
            logger.warning(f"Skipping analysis of {rel_path}: {e}")
            return None


def inspect_package(package_path: str, config: Optional[ViewdebConfig] = None) -> Report:
    return PackageInspector(config=config).inspect(package_path)

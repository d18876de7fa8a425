from abc import ABC, abstractmethod
from typing import List, Tuple
from ..models.package_info import ControlFiles, FileContent, FileEntry, PackageMetadata, Scripts


class BaseExtractor(ABC):
    """Abstract base class for package format extractors."""

    name: str = ""
    supported_extensions: Tuple[str, ...] = ()

    def supports(self, package_path: str) -> bool:
        return package_path.lower().endswith(tuple(ext.lower() for ext in self.supported_extensions))

    @abstractmethod
    def extract(self, scratch_dir: str, package_path: str) -> None:
        """
        Unpacks the package into ``scratch_dir/extracted`` and
        ``scratch_dir/control``.

        Raises:
            ExtractionFailed: If either unpack step fails.
        """
        pass

    @abstractmethod
    def parse_metadata(self, control_dir: str) -> PackageMetadata:
        """
        Reads the package metadata from the unpacked control directory.

        Raises:
            ControlReadError: If the control file is missing or unreadable.
        """
        pass

    @abstractmethod
    def list_files(self, extract_dir: str) -> List[FileEntry]:
        """
        Builds the manifest of the unpacked payload.

        Raises:
            WalkError: If the payload root cannot be read.
        """
        pass

    @abstractmethod
    def parse_scripts(self, control_dir: str) -> Scripts:
        pass

    @abstractmethod
    def read_control_files(self, extract_dir: str, control_dir: str) -> ControlFiles:
        pass

    @abstractmethod
    def read_file_content(self, file_path: str, max_lines: int) -> FileContent:
        pass

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any

# Ownership is not carried over from the archive; every entry reports root.
PLACEHOLDER_OWNER = 0

SCRIPT_NAMES = ("preinst", "postinst", "prerm", "postrm", "config", "templates")


class FileType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"  # walked over, never emitted
    ELF = "elf"
    DESKTOP = "desktop"


@dataclass(frozen=True)
class PackageMetadata:
    """Fields from the package's ``control`` file.

    The three required fields default to an empty string; everything else
    is None when the control file does not mention it.
    """
    package: str = ""
    version: str = ""
    architecture: str = ""
    maintainer: Optional[str] = None
    installed_size: Optional[str] = None
    section: Optional[str] = None
    priority: Optional[str] = None
    homepage: Optional[str] = None
    description: Optional[str] = None
    depends: Optional[str] = None
    pre_depends: Optional[str] = None
    recommends: Optional[str] = None
    suggests: Optional[str] = None
    conflicts: Optional[str] = None
    breaks: Optional[str] = None
    replaces: Optional[str] = None

    # attribute name -> control field name
    FIELD_NAMES = {
        "package": "Package",
        "version": "Version",
        "architecture": "Architecture",
        "maintainer": "Maintainer",
        "installed_size": "Installed-Size",
        "section": "Section",
        "priority": "Priority",
        "homepage": "Homepage",
        "description": "Description",
        "depends": "Depends",
        "pre_depends": "Pre-Depends",
        "recommends": "Recommends",
        "suggests": "Suggests",
        "conflicts": "Conflicts",
        "breaks": "Breaks",
        "replaces": "Replaces",
    }

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for attr, name in self.FIELD_NAMES.items():
            value = getattr(self, attr)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class FileEntry:
    path: str
    size: int
    mode: str
    mtime: str
    file_type: FileType
    is_elf: bool = False
    is_desktop: bool = False
    uid: int = PLACEHOLDER_OWNER
    gid: int = PLACEHOLDER_OWNER

    def __post_init__(self):
        if not self.path:
            raise ValueError("FileEntry path must not be empty")
        if self.file_type == FileType.DIRECTORY and (self.is_elf or self.is_desktop):
            raise ValueError(f"Directory {self.path} cannot carry analysis flags")
        if self.file_type == FileType.ELF and not self.is_elf:
            raise ValueError(f"{self.path}: elf tag without isElf flag")
        if self.file_type == FileType.DESKTOP and not self.is_desktop:
            raise ValueError(f"{self.path}: desktop tag without isDesktop flag")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "size": self.size,
            "mode": self.mode,
            "uid": self.uid,
            "gid": self.gid,
            "mtime": self.mtime,
            "type": self.file_type.value,
            "isElf": self.is_elf,
            "isDesktop": self.is_desktop,
        }


@dataclass(frozen=True)
class Scripts:
    preinst: Optional[str] = None
    postinst: Optional[str] = None
    prerm: Optional[str] = None
    postrm: Optional[str] = None
    config: Optional[str] = None
    templates: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in SCRIPT_NAMES)

    def to_dict(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in SCRIPT_NAMES if getattr(self, name) is not None}


@dataclass(frozen=True)
class ControlFiles:
    control: str
    md5sums: Optional[str] = None
    conffiles: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"control": self.control}
        if self.md5sums is not None:
            data["md5sums"] = self.md5sums
        if self.conffiles is not None:
            data["conffiles"] = self.conffiles
        return data


@dataclass(frozen=True)
class ELFInfo:
    elf_type: str = "unknown"
    machine: str = "unknown"
    entry: str = "0x0"
    program_headers: List[str] = field(default_factory=list)
    section_headers: List[str] = field(default_factory=list)
    dependencies: Optional[List[str]] = None
    interpreter: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.elf_type,
            "machine": self.machine,
            "entry": self.entry,
            "programHeaders": list(self.program_headers),
            "sectionHeaders": list(self.section_headers),
        }
        if self.dependencies is not None:
            data["dependencies"] = list(self.dependencies)
        if self.interpreter is not None:
            data["interpreter"] = self.interpreter
        return data


@dataclass(frozen=True)
class ParseStats:
    parse_time: int
    original_size: int
    extracted_size: int
    file_count: int
    elf_count: int
    desktop_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "parseTime": self.parse_time,
            "originalSize": self.original_size,
            "extractedSize": self.extracted_size,
            "fileCount": self.file_count,
            "elfCount": self.elf_count,
            "desktopCount": self.desktop_count,
        }


@dataclass(frozen=True)
class FileContent:
    path: str
    content: str
    is_text: bool
    is_truncated: bool
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "content": self.content,
            "isText": self.is_text,
            "isTruncated": self.is_truncated,
            "size": self.size,
        }


@dataclass(frozen=True)
class Report:
    metadata: PackageMetadata
    files: List[FileEntry]
    control_files: ControlFiles
    stats: ParseStats
    scripts: Optional[Scripts] = None
    elf_info: Optional[Dict[str, ELFInfo]] = None
    desktop_info: Optional[Dict[str, Dict[str, str]]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "files": [f.to_dict() for f in self.files],
        }
        if self.scripts is not None:
            data["scripts"] = self.scripts.to_dict()
        data["controlFiles"] = self.control_files.to_dict()
        if self.elf_info:
            data["elfInfo"] = {path: info.to_dict() for path, info in self.elf_info.items()}
        if self.desktop_info:
            data["desktopInfo"] = {path: dict(entry) for path, entry in self.desktop_info.items()}
        data["stats"] = self.stats.to_dict()
        return data

from abc import ABC, abstractmethod
from typing import Optional

# Conventional binary locations, relative to the payload root.
BIN_LOCATIONS = (
    "bin/", "sbin/", "usr/bin/", "usr/sbin/",
    "usr/local/bin/", "usr/local/sbin/",
    "lib/", "lib64/", "usr/lib/", "usr/lib64/",
    "usr/libexec/", "opt/",
)

# Object formats that are ELF wherever they sit in a binary location.
OBJECT_EXTENSIONS = (".so", ".a", ".la", ".o")

NON_BINARY_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg",
    ".txt", ".xml", ".html", ".css", ".js",
    ".py", ".sh", ".desktop", ".json", ".conf", ".service",
)

# Extensionless names that are executables outside the usual directories.
EXEC_NAMES = ("cc-switch", "app", "runner", "daemon", "server")

ELF_MAGIC = b"\x7fELF"


class BinaryClassifier(ABC):
    """Decides whether a manifest entry should be handed to the ELF analyzer."""

    @abstractmethod
    def is_likely_elf(self, path: str, full_path: Optional[str] = None) -> bool:
        """
        Args:
            path: Slash separated path relative to the payload root.
            full_path: Location of the entry on disk, for strategies that
                inspect content.

        Returns:
            True if the entry should be treated as an ELF binary.
        """
        pass


class PathHeuristicClassifier(BinaryClassifier):
    """
    Classifies by path only, never opening the file.

    Packages can ship many thousands of files, so sniffing every one for a
    magic number is too slow. Accuracy is traded for speed.
    """

    def is_likely_elf(self, path: str, full_path: Optional[str] = None) -> bool:
        for loc in BIN_LOCATIONS:
            if path.startswith(loc) or path.startswith("/" + loc):
                lower = path.lower()
                if lower.endswith(OBJECT_EXTENSIONS):
                    return True
                if lower.endswith(NON_BINARY_EXTENSIONS):
                    return False
                return True

        name = path.rsplit("/", 1)[-1].lower()
        return name in EXEC_NAMES


class MagicClassifier(BinaryClassifier):
    """Reads the first four bytes and checks the ELF magic number."""

    def is_likely_elf(self, path: str, full_path: Optional[str] = None) -> bool:
        if full_path is None:
            return False
        try:
            with open(full_path, "rb") as f:
                return f.read(4) == ELF_MAGIC
        except OSError:
            return False


def is_desktop_file(path: str) -> bool:
    return path.endswith(".desktop")
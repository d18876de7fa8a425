import os
import shutil
import logging
import tempfile
from typing import Optional

logger = logging.getLogger(__name__)


class AnalysisContext:
    """
    Owns the scratch directory of a single analysis run.

    Use as a context manager; the directory is created on enter with a
    unique name and removed on exit whatever the outcome of the run.
    """

    def __init__(self, prefix: str = "viewdeb_", root: Optional[str] = None):
        self.prefix = prefix
        self.root = root
        self.scratch_dir: Optional[str] = None

    @property
    def extract_path(self) -> str:
        return os.path.join(self._require_dir(), "extracted")

    @property
    def control_path(self) -> str:
        return os.path.join(self._require_dir(), "control")

    def _require_dir(self) -> str:
        if self.scratch_dir is None:
            raise RuntimeError("AnalysisContext is not active")
        return self.scratch_dir

    def open(self) -> "AnalysisContext":
        if self.root:
            os.makedirs(self.root, exist_ok=True)
        self.scratch_dir = tempfile.mkdtemp(prefix=self.prefix, dir=self.root)
        logger.debug(f"Created scratch directory {self.scratch_dir}")
        return self

    def close(self):
        if self.scratch_dir is None:
            return
        shutil.rmtree(self.scratch_dir, ignore_errors=True)
        logger.debug(f"Removed scratch directory {self.scratch_dir}")

    def __enter__(self) -> "AnalysisContext":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

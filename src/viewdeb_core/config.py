import os
import logging
import yaml
from pathlib import Path
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class LimitsConfig(BaseModel):
    max_package_size: int = Field(500 * MIB, ge=0)
    max_elf_analysis: int = Field(20, ge=0)
    allowed_extensions: List[str] = [".deb", ".udeb"]


class TimeoutConfig(BaseModel):
    # milliseconds
    extract_data: int = Field(60000, gt=0)
    extract_control: int = Field(30000, gt=0)
    readelf: int = Field(500, gt=0)


class AnalysisConfig(BaseModel):
    workers: int = Field(4, ge=1)
    scratch_prefix: str = "viewdeb_"
    scratch_root: Optional[str] = None
    preview_max_lines: int = Field(1000, ge=1)


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class ViewdebConfig(BaseModel):
    limits: LimitsConfig = LimitsConfig()
    timeouts: TimeoutConfig = TimeoutConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    server: ServerConfig = ServerConfig()


def load_config_data(env_var: str, default_paths: List[Path]) -> Dict[str, Any]:
    """Helper to load config from env var or list of paths"""
    candidates = []
    path = os.getenv(env_var)
    if path:
        candidates.append(Path(path))
    candidates.extend(default_paths)

    for p in candidates:
        if not p.exists():
            continue
        try:
            with open(p, "r") as f:
                return yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {p}: {e}")
            return {}
    return {}


def load_config() -> ViewdebConfig:
    base_dir = Path(__file__).resolve().parent.parent.parent

    # VIEWDEB_CONFIG wins, then the project config/ dir, then the cwd
    paths = [
        base_dir / "config" / "viewdeb.yaml",
        base_dir / "config" / "viewdeb.conf",
        Path("viewdeb.yaml"),
        Path("viewdeb.conf"),
    ]
    data = load_config_data("VIEWDEB_CONFIG", paths)
    if not isinstance(data, dict):
        logger.error("Ignoring config: top level must be a mapping")
        data = {}

    try:
        return ViewdebConfig(**data)
    except ValidationError as e:
        logger.error(f"Invalid config, falling back to defaults: {e}")
        return ViewdebConfig()


# Global Instance
settings = load_config()

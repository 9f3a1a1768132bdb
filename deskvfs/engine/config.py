"""
deskvfs Configuration — Load and validate deskvfs.yaml.

Usage:
    from deskvfs.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from deskvfs.engine.errors import VFSConfigError

CONFIG_FILE_NAME = "deskvfs.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for deskvfs.yaml
# ---------------------------------------------------------------------------

class StoreConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///.deskvfs/vfs.db"
    echo: bool = False


class UserConfig(BaseModel):
    name: str = "Admin"
    owner: str = "admin"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or "/" in v:
            raise ValueError(f"user name must be a single path segment, got '{v}'")
        return v


class MetadataConfig(BaseModel):
    recent_limit: int = Field(default=20, ge=1)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".deskvfs/logs"
    journal: bool = True

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging level must be a standard level name, got '{v}'")
        return v


class BootstrapConfig(BaseModel):
    seed_welcome: bool = True


class VFSConfig(BaseModel):
    """Root model for deskvfs.yaml."""
    store: StoreConfig = StoreConfig()
    user: UserConfig = UserConfig()
    metadata: MetadataConfig = MetadataConfig()
    logging: LoggingConfig = LoggingConfig()
    bootstrap: BootstrapConfig = BootstrapConfig()

    @property
    def home(self) -> str:
        """Absolute path of the configured user's home folder."""
        return f"/Users/{self.user.name}"


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[VFSConfig] = None


def _find_config_file() -> Optional[Path]:
    """Walk up from CWD looking for deskvfs.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate
    return None


def load_config(config_path: Optional[str] = None) -> VFSConfig:
    """
    Load and validate deskvfs.yaml.

    Args:
        config_path: Explicit path to the config file. If None, auto-discovers.

    Returns:
        Validated VFSConfig instance (defaults if no file exists).

    Raises:
        VFSConfigError: the file is not valid YAML or fails validation.
    """
    global _config

    path = Path(config_path) if config_path else _find_config_file()
    if path is None or not path.exists():
        _config = VFSConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise VFSConfigError(f"Cannot parse {path}: {e}", path=str(path), operation="load_config") from e

    if not isinstance(raw, dict):
        raise VFSConfigError(
            f"{path} must contain a mapping at the top level",
            path=str(path),
            operation="load_config",
        )

    try:
        _config = VFSConfig(**raw)
    except ValidationError as e:
        raise VFSConfigError(
            f"Invalid configuration in {path}: {e.error_count()} error(s)",
            path=str(path),
            operation="load_config",
            validation_errors=e.errors(),
        ) from e
    return _config


def get_config() -> VFSConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config

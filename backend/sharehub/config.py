"""ShareHub application configuration.

Loads settings from a single YAML file:
  * sharehub.settings.yaml  (override the path with SHAREHUB_SETTINGS)

A missing file is not an error: every section has working defaults.
Relative upload paths resolve against the directory holding the settings
file, so the service behaves the same regardless of the working directory.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("sharehub.settings.yaml")
SETTINGS_ENV_VAR = "SHAREHUB_SETTINGS"

_LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _resolve_path(value: str, base_dir: Path) -> str:
    if value == ":memory:":
        return value
    path = Path(value).expanduser()
    if path.is_absolute():
        return str(path)
    return str(base_dir / path)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class PresenceSettings(BaseModel):
    default_name:    str = "Anonymous"
    max_name_length: int = Field(default=64, ge=1)


class DeliverySettings(BaseModel):
    """Per-connection outbound buffering."""
    outbox_size: int = Field(default=256, ge=1)


class UploadSettings(BaseModel):
    upload_dir:       str = "uploads"
    db_path:          str = "file_metadata.duckdb"
    max_file_size_mb: int = Field(default=50, ge=1)

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
        return value


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    presence: PresenceSettings = Field(default_factory=PresenceSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    uploads:  UploadSettings   = Field(default_factory=UploadSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load *AppConfig* from YAML.

    Args:
        settings_path: Explicit settings file. Defaults to $SHAREHUB_SETTINGS,
            then ./sharehub.settings.yaml.
    """
    if settings_path is None:
        settings_path = os.environ.get(SETTINGS_ENV_VAR) or SETTINGS_FILE
    settings_path = Path(settings_path)

    data = _load_yaml(settings_path)
    config = AppConfig(**data)

    base_dir = settings_path.resolve().parent
    config.uploads.upload_dir = _resolve_path(config.uploads.upload_dir, base_dir)
    config.uploads.db_path = _resolve_path(config.uploads.db_path, base_dir)

    logger.info(
        "Settings loaded (server=%s:%s, uploads=%s, log_level=%s)",
        config.server.host,
        config.server.port,
        config.uploads.upload_dir,
        config.logging.level,
    )
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Process-wide configuration, loaded on first use."""
    return load_config()

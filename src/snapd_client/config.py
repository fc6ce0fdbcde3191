"""
snapd-client Configuration

Settings are loaded from:
1. Environment variables (prefixed with SNAPD_)
2. ~/.config/snapd-client/.env file

Key settings:
- SNAPD_SOCKET_PATH: Unix socket of the snapd daemon (default: /run/snapd.socket)
- SNAPD_AUTH_FILE: Credential file written by `snap login` (default: ~/.snap/auth.json)
- SNAPD_TIMEOUT: Per-request timeout in seconds (unset means wait forever)
- SNAPD_LOG_LEVEL: Log level used by the CLI
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_PATH = Path("/run/snapd.socket")
DEFAULT_ENV_FILE = Path.home() / ".config" / "snapd-client" / ".env"


def default_auth_file() -> Path:
    """Return the per-user credential file used by the snap command."""
    return Path.home() / ".snap" / "auth.json"


class Settings(BaseSettings):
    """snapd-client configuration settings."""

    socket_path: Path = Field(
        default=DEFAULT_SOCKET_PATH,
        description="Filesystem path of the snapd Unix socket",
    )
    auth_file: Path = Field(
        default_factory=default_auth_file,
        description="JSON credential file holding email and macaroon",
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Request timeout in seconds; None disables the timeout",
    )
    log_level: str = Field(
        default="WARNING",
        description="Log level for the snapc CLI",
    )

    model_config = SettingsConfigDict(
        env_prefix="SNAPD_",
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("socket_path", "auth_file", mode="before")
    @classmethod
    def _expand_path(cls, value: str | Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings."""
    settings = Settings()
    logger.debug(
        f"Settings loaded: socket_path={settings.socket_path} auth_file={settings.auth_file}"
    )
    return settings


def reload_settings() -> Settings:
    """Clear cached settings (useful for tests) and reload."""
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "default_auth_file",
    "DEFAULT_SOCKET_PATH",
]

"""Application configuration for iceberg-rest.

Defines configuration models for the HTTP server, storage (session database
and encryption key), upstream HTTP behavior and logging. Config is created via
`iceberg-rest init` and stored at the OS-appropriate location. Every field has
a default, so the service also runs without a config file.

Environment overrides (applied after the file is loaded):
    ICEBERG_REST_DATABASE_URL   storage.database_url
    ICEBERG_REST_CORS_ORIGINS   server.cors_origins (comma separated)

Example usage:
    config = AppConfig.load_from_files(get_config_path())
    config.save_to_file(get_config_path())
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_LOG_DIR",
    "AppConfig",
    "LoggingConfig",
    "ServerConfig",
    "StorageConfig",
    "UpstreamConfig",
    "get_config_path",
    "load_config",
]

import json
import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from iceberg_rest.constants import (
    APP_NAME,
    CONFIG_DIR,
    CONFIG_FILENAME,
    DATA_DIR,
    DEFAULT_HOST,
    DEFAULT_OAUTH_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    ENV_PREFIX,
    KEY_FILENAME,
    MAX_HTTP_TIMEOUT_SECONDS,
    MIN_HTTP_TIMEOUT_SECONDS,
)
from iceberg_rest.exceptions import ConfigurationError
from iceberg_rest.utils.file_helpers import ensure_secure_directory, load_validated_json, set_secure_permissions


# =============================================================================
# Platform-specific defaults
# =============================================================================


def _get_platform_log_dir() -> str:
    """Get platform-appropriate base log directory following OS conventions.

    Platform conventions:
        - macOS: ~/Library/Logs
        - Linux: $XDG_STATE_HOME or ~/.local/state
        - Windows: ~/AppData/Local
    """
    if sys.platform == "darwin":
        return "~/Library/Logs"
    elif sys.platform == "win32":
        return "~/AppData/Local"
    else:
        return os.environ.get("XDG_STATE_HOME", "~/.local/state")


DEFAULT_LOG_DIR = _get_platform_log_dir()

_DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{Path(DATA_DIR) / 'sessions.db'}"


# =============================================================================
# Configuration Models
# =============================================================================


class ServerConfig(BaseModel):
    """HTTP server configuration.

    Attributes:
        host: Interface uvicorn binds to.
        port: TCP port.
        cors_origins: Origins allowed to call the API from a browser.
    """

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class StorageConfig(BaseModel):
    """Session database and encryption key storage.

    Attributes:
        database_url: SQLAlchemy async URL of the sessions database.
        key_backend: Where the encryption key lives. "auto" prefers the OS
            keychain and falls back to the key file.
        key_file: Path of the raw key file (file backend).
    """

    database_url: str = _DEFAULT_DATABASE_URL
    key_backend: Literal["auto", "keychain", "file"] = "file"
    key_file: str = str(Path(DATA_DIR) / KEY_FILENAME)


class UpstreamConfig(BaseModel):
    """Outbound HTTP behavior.

    Attributes:
        timeout_seconds: Bound on each proxied catalog call.
        oauth_timeout_seconds: Bound on each OAuth2 token exchange.
        verify_tls: Verify upstream TLS certificates.
    """

    timeout_seconds: int = Field(
        default=DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    oauth_timeout_seconds: int = Field(
        default=DEFAULT_OAUTH_TIMEOUT_SECONDS,
        ge=MIN_HTTP_TIMEOUT_SECONDS,
        le=MAX_HTTP_TIMEOUT_SECONDS,
    )
    verify_tls: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        log_dir: Base directory; the system log goes in <log_dir>/iceberg-rest/.
        log_level: "INFO" writes only issues to file, "DEBUG" writes everything.
    """

    log_dir: str = DEFAULT_LOG_DIR
    log_level: Literal["DEBUG", "INFO"] = "INFO"

    @property
    def system_log_path(self) -> Path:
        return Path(self.log_dir).expanduser() / APP_NAME / "system.jsonl"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load_from_files(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a JSON file.

        Args:
            config_path: Path to config.json.

        Returns:
            Validated AppConfig.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the file is not valid JSON or fails validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {config_path}.\n"
                f"Run '{APP_NAME} init' to create one."
            )
        try:
            return load_validated_json(
                config_path,
                cls,
                file_type="config",
                recovery_hint=f"Fix the file or run '{APP_NAME} init --force'.",
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

    def save_to_file(self, config_path: Path) -> None:
        """Write configuration as JSON with owner-only permissions.

        Args:
            config_path: Destination path.
        """
        ensure_secure_directory(config_path.parent)
        config_path.write_text(json.dumps(self.model_dump(), indent=2) + "\n", encoding="utf-8")
        set_secure_permissions(config_path)

    def with_env_overrides(self, environ: dict[str, str] | None = None) -> "AppConfig":
        """Return a copy with ICEBERG_REST_* environment overrides applied.

        Args:
            environ: Environment mapping (defaults to os.environ).

        Returns:
            New AppConfig.
        """
        env = os.environ if environ is None else environ
        config = self.model_copy(deep=True)

        database_url = env.get(f"{ENV_PREFIX}DATABASE_URL", "").strip()
        if database_url:
            config.storage.database_url = database_url

        cors_origins = env.get(f"{ENV_PREFIX}CORS_ORIGINS", "").strip()
        if cors_origins:
            config.server.cors_origins = [o.strip() for o in cors_origins.split(",") if o.strip()]

        return config


def get_config_path() -> Path:
    """Path of the config file (overridable via ICEBERG_REST_CONFIG)."""
    override = os.environ.get(f"{ENV_PREFIX}CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return Path(CONFIG_DIR) / CONFIG_FILENAME


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from file if present, else defaults; then apply env overrides.

    Args:
        config_path: Explicit config path (defaults to get_config_path()).

    Returns:
        Effective AppConfig.

    Raises:
        ConfigurationError: If an existing file is invalid.
    """
    path = config_path or get_config_path()
    config = AppConfig.load_from_files(path) if path.exists() else AppConfig()
    return config.with_env_overrides()

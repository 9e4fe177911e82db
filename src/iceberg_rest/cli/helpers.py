"""Shared CLI utility functions."""

from __future__ import annotations

__all__ = [
    "build_session_store",
    "load_config_or_exit",
]

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from iceberg_rest.config import AppConfig, load_config
from iceberg_rest.exceptions import ConfigurationError

from .styling import style_error

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from iceberg_rest.sessions.store import SessionStore


def load_config_or_exit(config_path: Path | None = None) -> AppConfig:
    """Load the effective config, exiting with a readable error if invalid.

    Args:
        config_path: Explicit config file (defaults to the platform location).

    Returns:
        AppConfig with environment overrides applied.
    """
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        click.echo(style_error(f"Invalid configuration: {e.message}"), err=True)
        sys.exit(1)


async def build_session_store(config: AppConfig) -> "tuple[SessionStore, AsyncEngine]":
    """Open the sessions database for maintenance commands.

    The caller disposes the returned engine.
    """
    from iceberg_rest.security.key_store import create_key_store
    from iceberg_rest.sessions.db import create_engine, create_session_factory, init_db
    from iceberg_rest.sessions.store import SessionStore

    key = create_key_store(config.storage).get_or_create_key()
    engine = create_engine(config.storage.database_url)
    await init_db(engine)
    return SessionStore(create_session_factory(engine), key), engine

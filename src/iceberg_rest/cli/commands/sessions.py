"""Session maintenance commands for iceberg-rest CLI.

Commands:
    sessions count - Number of unexpired sessions
    sessions purge - Delete expired sessions
"""

from __future__ import annotations

__all__ = ["sessions"]

import asyncio
import sys
from pathlib import Path

import click

from iceberg_rest.config import AppConfig
from iceberg_rest.exceptions import StorageUnavailableError

from ..helpers import build_session_store, load_config_or_exit
from ..styling import style_error, style_label, style_success

_config_option = click.option(
    "--config", "config_path", type=click.Path(path_type=Path), help="Config file to read"
)


async def _count(config: AppConfig) -> int:
    store, engine = await build_session_store(config)
    try:
        return await store.count_active()
    finally:
        await engine.dispose()


async def _purge(config: AppConfig) -> int:
    store, engine = await build_session_store(config)
    try:
        return await store.purge_expired()
    finally:
        await engine.dispose()


@click.group()
def sessions() -> None:
    """Session maintenance."""


@sessions.command("count")
@_config_option
def count_cmd(config_path: Path | None) -> None:
    """Show the number of unexpired sessions."""
    config = load_config_or_exit(config_path)
    try:
        active = asyncio.run(_count(config))
    except StorageUnavailableError as e:
        click.echo(style_error(e.message), err=True)
        sys.exit(1)
    click.echo(f"{style_label('Active sessions')} {active}")


@sessions.command("purge")
@_config_option
def purge_cmd(config_path: Path | None) -> None:
    """Delete expired sessions."""
    config = load_config_or_exit(config_path)
    try:
        removed = asyncio.run(_purge(config))
    except StorageUnavailableError as e:
        click.echo(style_error(e.message), err=True)
        sys.exit(1)
    click.echo(style_success(f"Removed {removed} expired session(s)"))

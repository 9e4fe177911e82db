"""Encryption key commands for iceberg-rest CLI.

Commands:
    key status - Show key backend, location and whether a key exists
"""

from __future__ import annotations

__all__ = ["key"]

import sys
from pathlib import Path

import click

from iceberg_rest.exceptions import StorageUnavailableError
from iceberg_rest.security.key_store import create_key_store, get_key_store_info

from ..helpers import load_config_or_exit
from ..styling import style_dim, style_error, style_header, style_label


@click.group()
def key() -> None:
    """Encryption key management."""


@key.command("status")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file to read")
def status_cmd(config_path: Path | None) -> None:
    """Show where the encryption key lives (never prints key material)."""
    config = load_config_or_exit(config_path)
    store = create_key_store(config.storage)

    try:
        info = get_key_store_info(store)
    except StorageUnavailableError as e:
        click.echo(style_error(e.message), err=True)
        sys.exit(1)

    click.echo(style_header("Encryption key"))
    click.echo(f"{style_label('Backend')} {info['backend']}")
    click.echo(f"{style_label('Location')} {info['location']}")
    click.echo(f"{style_label('Provisioned')} {'yes' if info['provisioned'] else 'no'}")
    if not info["provisioned"]:
        click.echo(style_dim("A key is generated on first server start."))

"""Init command for iceberg-rest CLI.

Writes a config file with defaults (optionally overridden by flags).
"""

from __future__ import annotations

__all__ = ["init"]

import sys
from pathlib import Path

import click

from iceberg_rest.config import AppConfig, get_config_path
from iceberg_rest.constants import DEFAULT_HOST, DEFAULT_PORT

from ..styling import style_dim, style_error, style_success


@click.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file to write")
@click.option("--host", default=DEFAULT_HOST, show_default=True, help="Interface to bind")
@click.option("--port", default=DEFAULT_PORT, show_default=True, type=click.IntRange(1, 65535), help="TCP port")
@click.option("--database-url", help="SQLAlchemy async URL for the sessions database")
@click.option(
    "--key-backend",
    type=click.Choice(["auto", "keychain", "file"]),
    default="file",
    show_default=True,
    help="Where the encryption key is stored",
)
@click.option("--cors-origin", "cors_origins", multiple=True, help="Allowed browser origin (repeatable)")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init(
    config_path: Path | None,
    host: str,
    port: int,
    database_url: str | None,
    key_backend: str,
    cors_origins: tuple[str, ...],
    force: bool,
) -> None:
    """Create the configuration file."""
    path = config_path or get_config_path()

    if path.exists() and not force:
        click.echo(style_error(f"Config already exists at {path}"), err=True)
        click.echo(style_dim("Use --force to overwrite."), err=True)
        sys.exit(1)

    config = AppConfig()
    config.server.host = host
    config.server.port = port
    config.storage.key_backend = key_backend  # type: ignore[assignment]
    if database_url:
        config.storage.database_url = database_url
    if cors_origins:
        config.server.cors_origins = list(cors_origins)

    try:
        config.save_to_file(path)
    except OSError as e:
        click.echo(style_error(f"Failed to write config: {e}"), err=True)
        sys.exit(1)

    click.echo(style_success(f"Configuration saved to {path}"))

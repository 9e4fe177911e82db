"""Main CLI entry point for iceberg-rest.

Defines the CLI group and registers all subcommands.

Commands:
    init      - Write the configuration file
    key       - Encryption key status
    sessions  - Session maintenance (count, purge)
    start     - Start the API server

Subcommand help:
    iceberg-rest COMMAND -h    Show help for a specific command
"""

from __future__ import annotations

__all__ = ["cli", "main"]

import sys

import click

from iceberg_rest import __version__

from .commands.init import init
from .commands.key import key
from .commands.sessions import sessions
from .commands.start import start


class ReorderedGroup(click.Group):
    """Custom group that shows commands before custom help text."""

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        formatter.write(
            """
Quick Start:
  iceberg-rest init                 Write config with defaults
  iceberg-rest start                Serve on 127.0.0.1:8787

Environment Overrides:
  ICEBERG_REST_CONFIG               Config file location
  ICEBERG_REST_DATABASE_URL         Sessions database URL
  ICEBERG_REST_CORS_ORIGINS         Allowed origins (comma separated)
"""
        )


@click.group(
    cls=ReorderedGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option("--version", "-v", is_flag=True, help="Show version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """iceberg-rest: Authenticating proxy for Apache Iceberg REST catalogs."""
    if version:
        click.echo(f"iceberg-rest {__version__}")
        sys.exit(0)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Register commands
cli.add_command(init)
cli.add_command(key)
cli.add_command(sessions)
cli.add_command(start)


def main() -> None:
    """CLI entry point."""
    cli()

"""Start command for iceberg-rest CLI.

Runs the API server with uvicorn.
"""

from __future__ import annotations

__all__ = ["start"]

import logging
from pathlib import Path

import click
import uvicorn

from iceberg_rest import __version__
from iceberg_rest.api.server import create_api_app
from iceberg_rest.telemetry.system.system_logger import configure_system_logger_file, get_system_logger

from ..helpers import load_config_or_exit


@click.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file to read")
@click.option("--host", help="Override server.host")
@click.option("--port", type=click.IntRange(1, 65535), help="Override server.port")
def start(config_path: Path | None, host: str | None, port: int | None) -> None:
    """Start the API server."""
    config = load_config_or_exit(config_path)
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    file_level = logging.DEBUG if config.logging.log_level == "DEBUG" else logging.WARNING
    configure_system_logger_file(config.logging.system_log_path, level=file_level)

    get_system_logger().info(
        {
            "event": "server_starting",
            "message": f"Starting iceberg-rest {__version__} on {config.server.host}:{config.server.port}",
            "host": config.server.host,
            "port": config.server.port,
        }
    )

    app = create_api_app(config)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level="warning")

"""Command-line interface for iceberg-rest.

Provides commands for initializing configuration, starting the server,
and session/key maintenance.
"""

from .main import cli, main

__all__ = ["cli", "main"]

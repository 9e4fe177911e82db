"""Logging utilities (formatters)."""

from iceberg_rest.utils.logging.iso_formatter import ISO8601Formatter

__all__ = ["ISO8601Formatter"]

"""System logger for operational events.

This module provides a singleton system logger for all operational events
(session lifecycle, key provisioning, upstream failures).

Logging strategy:
- Console (stderr): ALL operational messages (INFO and above)
- File (system.jsonl): Only issues (WARNING, ERROR, CRITICAL)

Messages are dicts with an "event" key. Credentials are never logged and
session ids only in truncated form (see short_id()).

The file handler is configured separately via configure_system_logger_file()
once the log_dir from config is available.
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
    "short_id",
]

import logging
import sys
from pathlib import Path

from iceberg_rest.constants import APP_NAME
from iceberg_rest.utils.file_helpers import set_secure_permissions
from iceberg_rest.utils.logging.iso_formatter import ISO8601Formatter

# Characters of a session id that may appear in logs
_SESSION_ID_LOG_PREFIX = 8


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            return f"{record.levelname}: {msg}"
        return f"{record.levelname}: {record.getMessage()}"


_system_logger: logging.Logger | None = None
_file_handler_configured: bool = False


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with stderr handler only.
    File handler is added later via configure_system_logger_file().

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "upstream_unreachable", "endpoint_host": "..."})
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False

    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.INFO)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def configure_system_logger_file(log_path: Path, level: int = logging.WARNING) -> None:
    """Attach the JSONL file handler to the system logger.

    Should be called once after config is loaded. Later calls are no-ops.

    Args:
        log_path: Path to the system log file.
        level: Minimum level written to the file.
    """
    global _file_handler_configured

    if _file_handler_configured:
        return

    logger = get_system_logger()

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        set_secure_permissions(log_path.parent, is_directory=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError as e:
        # stderr still works
        logger.warning(
            {
                "event": "system_log_unavailable",
                "message": f"Cannot write system log at {log_path}: {e}",
                "log_path": str(log_path),
            }
        )
        return

    file_handler.setLevel(level)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)

    _file_handler_configured = True


def short_id(session_id: str | None) -> str | None:
    """Truncate a session id for logging.

    Args:
        session_id: Full session identifier.

    Returns:
        First few characters followed by an ellipsis, or None.
    """
    if not session_id:
        return None
    return f"{session_id[:_SESSION_ID_LOG_PREFIX]}..."

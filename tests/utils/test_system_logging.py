"""Tests for the system logger, its formatters and file helpers."""

from __future__ import annotations

import json
import logging
import stat
import sys
from pathlib import Path

import pytest
from pydantic import BaseModel

from iceberg_rest.telemetry.system import system_logger
from iceberg_rest.telemetry.system.system_logger import ConsoleFormatter, short_id
from iceberg_rest.utils.file_helpers import ensure_secure_directory, load_validated_json
from iceberg_rest.utils.logging import ISO8601Formatter


def _record(msg: object, level: int = logging.WARNING) -> logging.LogRecord:
    return logging.LogRecord("test", level, __file__, 1, msg, None, None)


class TestShortId:
    def test_truncates(self) -> None:
        assert short_id("a" * 64) == "aaaaaaaa..."

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value: str | None) -> None:
        assert short_id(value) is None


class TestFormatters:
    def test_console_uses_message_field(self) -> None:
        formatter = ConsoleFormatter()

        line = formatter.format(_record({"event": "upstream_timeout", "message": "Catalog timed out"}))

        assert line == "WARNING: Catalog timed out"

    def test_console_falls_back_to_event(self) -> None:
        line = ConsoleFormatter().format(_record({"event": "session_deleted"}, logging.INFO))

        assert line == "INFO: session_deleted"

    def test_iso_formatter_writes_json_line(self) -> None:
        # Arrange
        record = _record({"event": "request_failed", "status_code": 502})
        record.created = 0

        # Act
        entry = json.loads(ISO8601Formatter().format(record))

        # Assert
        assert entry == {
            "time": "1970-01-01T00:00:00.000Z",
            "level": "WARNING",
            "event": "request_failed",
            "status_code": 502,
        }

    def test_iso_formatter_wraps_plain_strings(self) -> None:
        entry = json.loads(ISO8601Formatter().format(_record("plain text")))

        assert entry["message"] == "plain text"


class TestSystemLogFile:
    @pytest.fixture(autouse=True)
    def _reset_file_handler(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(system_logger, "_file_handler_configured", False)
        logger = system_logger.get_system_logger()
        before = list(logger.handlers)
        yield
        for handler in logger.handlers[:]:
            if handler not in before:
                handler.close()
                logger.removeHandler(handler)

    def test_only_issues_written_by_default(self, tmp_path: Path) -> None:
        # Arrange
        log_path = tmp_path / "logs" / "system.jsonl"
        system_logger.configure_system_logger_file(log_path)
        logger = system_logger.get_system_logger()

        # Act
        logger.info({"event": "session_created", "message": "created"})
        logger.warning({"event": "upstream_timeout", "message": "timed out"})
        for handler in logger.handlers:
            handler.flush()

        # Assert
        lines = log_path.read_text().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["upstream_timeout"]

    def test_second_configure_is_noop(self, tmp_path: Path) -> None:
        system_logger.configure_system_logger_file(tmp_path / "a.jsonl")
        system_logger.configure_system_logger_file(tmp_path / "b.jsonl")

        assert not (tmp_path / "b.jsonl").exists()

    def test_unwritable_location_keeps_stderr_only(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        logger = system_logger.get_system_logger()
        handlers_before = len(logger.handlers)

        system_logger.configure_system_logger_file(blocker / "system.jsonl")

        assert len(logger.handlers) == handlers_before


class _Sample(BaseModel):
    name: str
    port: int


class TestFileHelpers:
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_secure_directory_is_owner_only(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"

        ensure_secure_directory(target)

        assert stat.S_IMODE(target.stat().st_mode) == 0o700

    def test_load_validated_json(self, tmp_path: Path) -> None:
        path = tmp_path / "sample.json"
        path.write_text(json.dumps({"name": "x", "port": 1}))

        assert load_validated_json(path, _Sample) == _Sample(name="x", port=1)

    def test_validation_error_lists_fields_and_hint(self, tmp_path: Path) -> None:
        path = tmp_path / "sample.json"
        path.write_text(json.dumps({"name": "x", "port": "nope"}))

        with pytest.raises(ValueError) as exc_info:
            load_validated_json(path, _Sample, file_type="sample", recovery_hint="Fix it.")

        assert "port" in str(exc_info.value)
        assert str(exc_info.value).endswith("Fix it.")

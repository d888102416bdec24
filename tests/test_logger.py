"""
Unit tests for StructuredLogger
===============================
Tests JSON formatting and handler setup.
"""

import json
import logging
import sys
from datetime import datetime

from position_relay.core.logger import JsonFormatter, StructuredLogger
from position_relay.infrastructure.config.settings import LogLevel, LoggingSettings


def make_record(msg, exc_info=None):
    return logging.LogRecord(
        name="PositionRelay",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=None,
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Test JSON output"""

    def test_structured_payload(self):
        record = make_record({"event_type": "participant_session.joined", "data": {"participant_id": "p1"}})

        output = json.loads(JsonFormatter().format(record))

        assert output["level"] == "INFO"
        assert output["logger"] == "PositionRelay"
        assert output["event_type"] == "participant_session.joined"
        assert output["data"] == {"participant_id": "p1"}
        assert "timestamp" in output

    def test_plain_message(self):
        output = json.loads(JsonFormatter().format(make_record("hello")))

        assert output["message"] == "hello"

    def test_enum_and_datetime_values(self):
        record = make_record({"data": {"level": LogLevel.DEBUG, "at": datetime(2024, 1, 1)}})

        output = json.loads(JsonFormatter().format(record))

        assert output["data"] == {"level": "DEBUG", "at": "2024-01-01 00:00:00"}

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record({"event_type": "x"}, exc_info=sys.exc_info())

        output = json.loads(JsonFormatter().format(record))

        assert "ValueError: bad" in output["exception"]


class TestStructuredLogger:
    """Test handler setup"""

    def test_level_from_settings(self):
        logger = StructuredLogger("test.level", LoggingSettings(level=LogLevel.WARNING, console_enabled=False))

        assert logger.logger.level == logging.WARNING
        assert logger.logger.propagate is False

    def test_console_handler_not_duplicated(self):
        config = LoggingSettings(console_enabled=True)

        StructuredLogger("test.console", config)
        logger = StructuredLogger("test.console", config)

        assert len(logger.logger.handlers) == 1

    def test_file_handler_writes_json_lines(self, tmp_path):
        config = LoggingSettings(console_enabled=False, file_enabled=True, log_dir=str(tmp_path))
        logger = StructuredLogger("test.file", config)

        logger.info("relay_server.started", {"port": 3000})
        for handler in logger.logger.handlers:
            handler.flush()

        lines = (tmp_path / "test.file.jsonl").read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[-1])["data"] == {"port": 3000}

        for handler in list(logger.logger.handlers):
            handler.close()
            logger.logger.removeHandler(handler)

    def test_below_level_not_emitted(self, tmp_path):
        config = LoggingSettings(console_enabled=False, file_enabled=True, level=LogLevel.INFO, log_dir=str(tmp_path))
        logger = StructuredLogger("test.filtered", config)

        logger.debug("broadcast_router.broadcast", {"delivered": 1})
        logger.info("participant_session.left", {"participant_id": "p1"})
        for handler in logger.logger.handlers:
            handler.flush()

        lines = (tmp_path / "test.filtered.jsonl").read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event_type"] for line in lines] == ["participant_session.left"]

        for handler in list(logger.logger.handlers):
            handler.close()
            logger.logger.removeHandler(handler)

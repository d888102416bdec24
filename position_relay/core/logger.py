import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path


class JsonFormatter(logging.Formatter):
    """Formats one log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            payload = dict(record.msg)
        else:
            payload = {"message": record.getMessage()}

        log_object = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "lineno": record.lineno,
            **payload,
        }
        if record.exc_info:
            log_object["exception"] = self.formatException(record.exc_info)

        # Values without a JSON form (enums, datetimes, close reasons) go out as str()
        return json.dumps(log_object, default=str, ensure_ascii=False)


class StructuredLogger:
    """
    Thin wrapper over logging.Logger that emits (event_type, data) pairs.

    Usage:
        logger.info("participant_session.joined", {"participant_id": "p1"})

    Creating a second StructuredLogger with the same name reuses the
    underlying logging.Logger without stacking another console or file
    handler on it.
    """

    def __init__(self, name: str, config: Any):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, str(getattr(config.level, 'value', config.level)).upper(), logging.INFO))
        self.logger.propagate = False

        structured = getattr(config, 'structured_logging', True)

        if getattr(config, 'console_enabled', True):
            self._setup_console_handler(structured)

        if getattr(config, 'file_enabled', False):
            log_file = Path(getattr(config, 'log_dir', 'logs')) / f"{name}.jsonl"
            self._setup_file_handler(
                str(log_file),
                getattr(config, 'max_file_size_mb', 100),
                getattr(config, 'backup_count', 5),
                structured
            )

    @staticmethod
    def _make_formatter(structured: bool) -> logging.Formatter:
        if structured:
            return JsonFormatter()
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    def _setup_console_handler(self, structured: bool):
        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, logging.StreamHandler) and getattr(existing_handler, 'stream', None) is sys.stdout:
                return

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(self._make_formatter(structured))
        self.logger.addHandler(handler)

    def _setup_file_handler(self, log_file: str, max_size_mb: int, backup_count: int, structured: bool):
        """Attach a rotating JSON-lines file handler, once per file."""
        log_file_normalized = os.path.abspath(log_file)
        for existing_handler in self.logger.handlers:
            if isinstance(existing_handler, RotatingFileHandler) and existing_handler.baseFilename == log_file_normalized:
                return

        os.makedirs(os.path.dirname(log_file_normalized), exist_ok=True)

        try:
            handler = RotatingFileHandler(
                log_file_normalized,
                maxBytes=max_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding='utf-8'
            )
        except OSError as e:
            # Logging is not up yet, stderr is the only place left to report this
            print(f"ERROR: Failed to create file handler for {log_file}: {e}", file=sys.stderr)
            return

        handler.setFormatter(self._make_formatter(structured))
        self.logger.addHandler(handler)

    def _log(self, level: int, event_type: str, data: Optional[Dict[str, Any]], exc_info=False):
        self.logger.log(level, {"event_type": event_type, "data": data or {}}, exc_info=exc_info)

    def info(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.INFO, event_type, data)

    def warning(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.WARNING, event_type, data)

    def error(self, event_type: str, data: Dict[str, Any] = None, exc_info=False):
        """
        Log an error event.

        Args:
            event_type: Dotted event name
            data: Optional error context data
            exc_info: Include exception info (default: False)
        """
        self._log(logging.ERROR, event_type, data, exc_info=exc_info)

    def debug(self, event_type: str, data: Dict[str, Any] = None):
        self._log(logging.DEBUG, event_type, data)

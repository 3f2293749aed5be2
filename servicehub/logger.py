"""
Structured JSON Logging Module.

One JSON object per line.  Session events are tagged through ``extra``
and lifted to the top level of the entry so a log shipper can filter on
them directly::

    log.info("Mode switched.", extra={"event": "MODE_SWITCH", "user_id": 42})
    {"timestamp": "...", "level": "INFO", "logger_name": "servicehub.session",
     "event": "MODE_SWITCH", "user_id": 42, "message": "Mode switched."}

Credentials never reach the log: extra fields named like a token or a
password are masked.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# Extra fields promoted out of the nested "extra" object.
_TOP_LEVEL_FIELDS: tuple[str, ...] = ("event", "user_id")

_SENSITIVE_FIELDS: frozenset[str] = frozenset({
    "token",
    "access_token",
    "refresh_token",
    "refreshToken",
    "password",
    "senha",
})
_MASK: str = "***"


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.LogRecord(
            name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
        ).__dict__.keys()
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
        }

        extra: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in self._STANDARD_ATTRS:
                continue
            if key in _SENSITIVE_FIELDS:
                value = _MASK
            if key in _TOP_LEVEL_FIELDS:
                entry[key] = value
            else:
                extra[key] = value

        entry["message"] = record.getMessage()
        if extra:
            entry["extra"] = extra

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            entry["exception"] = record.exc_text

        return json.dumps(entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """Injectable logger writing JSON to stdout and a rotating file.

    Reusing a *name* reuses the configured ``logging.Logger``; handlers
    are attached only once per name.  If the log file cannot be opened
    the logger stays console-only.
    """

    def __init__(
        self,
        name: str = "servicehub",
        level: int = logging.INFO,
        log_file: Optional[str] = None,
    ) -> None:
        self._logger: logging.Logger = logging.getLogger(name)
        self._logger.setLevel(level)
        if not self._logger.handlers:
            self._attach_handlers(level, log_file)

    def _attach_handlers(self, level: int, log_file: Optional[str]) -> None:
        # Lazy import: config logs through the stdlib logger at import time.
        from servicehub.config import get_config
        cfg = get_config()

        formatter = JSONFormatter()
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(level)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        path = Path(log_file or cfg.LOG_FILE)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            rotating = RotatingFileHandler(
                filename=str(path),
                maxBytes=cfg.LOG_MAX_BYTES,
                backupCount=cfg.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as exc:
            self._logger.warning(
                "Log file '%s' unavailable (%s); logging to console only.", path, exc,
            )
            return
        rotating.setLevel(level)
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._logger.error(msg, *args, **kwargs)


def get_logger(name: str = "servicehub") -> StructuredLogger:
    """Return a ``StructuredLogger`` for *name*."""
    return StructuredLogger(name=name)

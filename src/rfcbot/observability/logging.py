"""Structured JSON logging for the receiver and worker.

Each record is one JSON line on stdout. Cloud Logging reads `severity`,
`level` keeps the Python name, and every line carries the APP_ROLE and
the current correlation id so a webhook delivery can be followed into the
worker task it enqueued.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

# Keys owned by the formatter; extra_fields cannot overwrite them
_BASE_KEYS = frozenset(
    {"timestamp", "severity", "level", "logger", "message", "role", "correlationId", "exception"}
)

_SEVERITY = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARNING",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": _SEVERITY.get(record.levelno, "DEFAULT"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "role": os.environ.get("APP_ROLE") or "public",
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            for key, value in extra_fields.items():
                log_obj[f"extra_{key}" if key in _BASE_KEYS else key] = value

        return json.dumps(log_obj, default=str)


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Logger with the JSON handler attached once; level from LOG_LEVEL (default INFO)."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        logger.propagate = False

    return logger

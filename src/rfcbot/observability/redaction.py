"""Redaction helpers for safe logging. Webhook and API data pass through these."""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any

# GitHub credentials and emails must never appear in logs
_GITHUB_TOKEN_PATTERN = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})\b")
_AUTH_HEADER_PATTERN = re.compile(r"\b(token|bearer)\s+[A-Za-z0-9._\-]+", re.IGNORECASE)
_SIGNATURE_PATTERN = re.compile(r"sha(?:1|256)=[0-9a-fA-F]+")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Longer strings are most likely comment or issue bodies
MAX_LOGGED_STRING = 200


def redact_string(value: str) -> str:
    """Redact credentials and emails from a string, truncating long text."""
    result = _GITHUB_TOKEN_PATTERN.sub(_REDACTED, value)
    result = _AUTH_HEADER_PATTERN.sub(lambda m: f"{m.group(1)} {_REDACTED}", result)
    result = _SIGNATURE_PATTERN.sub(_REDACTED, result)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    if len(result) > MAX_LOGGED_STRING:
        result = f"{result[:MAX_LOGGED_STRING]}...(len={len(value)})"
    return result


def redact_value(value: Any) -> str:
    """Redact any value for safe logging. Returns string representation."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return redact_value(value.value)
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple, set)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}

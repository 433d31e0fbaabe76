"""Time utilities for consistent timestamp handling.

The schema stores TIMESTAMP (without time zone) columns holding UTC values,
so writes go through utc_now_naive().
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """Return current UTC timestamp without tzinfo, for TIMESTAMP columns."""
    return utc_now().replace(tzinfo=None)


def parse_github_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub API timestamp ("2018-06-20T06:28:54Z") into naive UTC."""
    if not value:
        return None
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ")


def format_github_timestamp(value: datetime) -> str:
    """Format a datetime for GitHub's `since` query parameter."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")

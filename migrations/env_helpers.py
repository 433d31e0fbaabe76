"""Helpers shared by env.py and the revision modules.

Kept apart from env.py so they can be imported (and tested) without an
active alembic.context.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from urllib.parse import quote_plus, urlparse, urlunparse

from sqlalchemy.engine import make_url

SQL_DIR = Path(__file__).resolve().parent / "sql"

# key=value or key='quoted value' with backslash escapes inside quotes
_DSN_TOKEN = re.compile(r"\s*(\w+)\s*=\s*(?:'((?:\\.|[^'\\])*)'|(\S*))")

_SQLALCHEMY_SCHEME = "postgresql+psycopg2://"


def _parse_libpq_dsn(dsn: str) -> dict[str, str]:
    """Parse a libpq key=value DSN into a dict."""
    tokens: dict[str, str] = {}
    for match in _DSN_TOKEN.finditer(dsn):
        key, quoted, bare = match.groups()
        if quoted is not None:
            tokens[key] = re.sub(r"\\(.)", r"\1", quoted)
        else:
            tokens[key] = bare
    return tokens


def _libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    Unix socket hosts (host=/var/run/postgresql) become a `host` query
    parameter; TCP hosts go into the netloc with port (default 5432).
    """
    tokens = _parse_libpq_dsn(dsn)

    if not tokens.get("password"):
        db_password = os.environ.get("DB_PASSWORD", "")
        if db_password:
            tokens["password"] = db_password

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(tokens.get("password", ""))
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"{_SQLALCHEMY_SCHEME}{user}:{password}@/{dbname}?host={quote_plus(host)}"

    return f"{_SQLALCHEMY_SCHEME}{user}:{password}@{host}:{port}/{dbname}"


def _inject_password(url: str, password: str) -> str:
    parsed = urlparse(url)
    if parsed.password:
        return url
    netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def _get_database_url() -> str:
    """Resolve DATABASE_URL into a SQLAlchemy URL for the psycopg2 driver.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")

    if "://" not in url:
        return _libpq_dsn_to_url(url)

    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            url = _SQLALCHEMY_SCHEME + url[len(prefix):]
            break

    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password:
        url = _inject_password(url, db_password)
    return url


def read_sql(name: str) -> str:
    """Contents of migrations/sql/<name>.sql."""
    return (SQL_DIR / f"{name}.sql").read_text(encoding="utf-8")


def describe_url(url: str) -> str:
    """The database URL with its password masked, for log lines."""
    return make_url(url).render_as_string(hide_password=True)

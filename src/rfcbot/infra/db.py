"""psycopg2 connection and transaction helpers.

Repositories never open connections themselves: callers wrap a unit of work
in txn() and hand the cursor down. Connections are short-lived (one per
webhook delivery, task or proposal evaluation) and are tagged with
application_name rfcbot-<APP_ROLE> so they can be told apart in
pg_stat_activity.
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2 import errorcodes
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

DEFAULT_CONNECT_TIMEOUT = 10


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(token.startswith("password=") for token in dsn.split())


def connect_kwargs(dsn: str) -> dict[str, Any]:
    """Keyword arguments passed to psycopg2.connect alongside the DSN.

    DB_PASSWORD is only used when the DSN carries no password of its own.
    """
    kwargs: dict[str, Any] = {
        "application_name": f"rfcbot-{os.environ.get('APP_ROLE') or 'public'}",
        "connect_timeout": int(os.environ.get("DB_CONNECT_TIMEOUT") or DEFAULT_CONNECT_TIMEOUT),
    }
    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password and not _dsn_has_password(dsn):
        kwargs["password"] = db_password
    return kwargs


def get_conn() -> PgConnection:
    """Open a connection to DATABASE_URL (URL or libpq key=value DSN).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return psycopg2.connect(dsn, **connect_kwargs(dsn))


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Yield a cursor; commit on success, roll back on any exception.

    A connection opened here is closed on exit; a passed-in one is left open.

        with txn() as cur:
            close_poll(cur, poll_id)
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> tuple[Any, ...] | None:
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor, query: str, params: Sequence[Any] | None = None
) -> list[tuple[Any, ...]]:
    cur.execute(query, params)
    return cur.fetchall()


def is_unique_violation(exc: BaseException) -> bool:
    return getattr(exc, "pgcode", None) == errorcodes.UNIQUE_VIOLATION


def is_foreign_key_violation(exc: BaseException) -> bool:
    return getattr(exc, "pgcode", None) == errorcodes.FOREIGN_KEY_VIOLATION

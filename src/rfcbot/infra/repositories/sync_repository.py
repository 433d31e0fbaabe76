"""Scrape bookkeeping and webhook delivery dedupe.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from rfcbot.infra.db import fetchone


def record_sync(
    cur: PgCursor, *, successful: bool, ran_at: datetime, message: str | None = None
) -> None:
    cur.execute(
        "INSERT INTO githubsync (successful, ran_at, message) VALUES (%s, %s, %s)",
        (successful, ran_at, message),
    )


def last_successful_sync(cur: PgCursor) -> datetime | None:
    row = fetchone(cur, "SELECT MAX(ran_at) FROM githubsync WHERE successful = true")
    return row[0] if row else None


def record_delivery(cur: PgCursor, *, delivery_id: str, event: str) -> bool:
    """Remember a webhook delivery.

    Returns:
        True if first seen, False for a redelivery.
    """
    cur.execute(
        """
        INSERT INTO github_webhook_deliveries (delivery_id, event)
        VALUES (%s, %s)
        ON CONFLICT (delivery_id) DO NOTHING
        """,
        (delivery_id, event),
    )
    return cur.rowcount == 1

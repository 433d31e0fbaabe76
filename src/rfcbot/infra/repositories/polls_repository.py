"""Polls repository - poll and poll_response_request tables.

Uses raw SQL with psycopg2 (no ORM).

Contract enforced by the schema and surfaced here:

  * one poll per issue (UNIQUE fk_issue)      → DuplicatePollError
  * one request per (poll, respondent)        → DuplicateResponseRequestError
  * deleting a poll deletes its requests      (ON DELETE CASCADE)

Callers pass resolved ids (issue, users, comments). Unique violations abort
the surrounding transaction, so the caller's txn() rolls back.

poll_teams holds the targeted team labels serialized as a JSON array.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable

import psycopg2
from psycopg2.extensions import cursor as PgCursor

from rfcbot.domain.models import GitHubUser, Poll, PollResponseRequest
from rfcbot.infra.db import is_unique_violation
from rfcbot.infra.time import utc_now_naive

_POLL_COLUMNS = """
    id, fk_issue, fk_initiator, fk_initiating_comment, fk_bot_tracking_comment,
    poll_question, poll_created_at, poll_closed, poll_teams
"""


class DuplicatePollError(Exception):
    """The issue already has a poll."""


class DuplicateResponseRequestError(Exception):
    """The respondent was already asked to answer this poll."""


def serialize_teams(teams: Iterable[str]) -> str:
    return json.dumps(list(teams))


def parse_teams(raw: str) -> tuple[str, ...]:
    """Decode poll_teams; tolerates a legacy comma-separated value."""
    raw = raw.strip()
    if not raw:
        return ()
    if raw.startswith("["):
        return tuple(str(team) for team in json.loads(raw))
    return tuple(team.strip() for team in raw.split(",") if team.strip())


def _row_to_poll(row: tuple) -> Poll:
    return Poll(
        id=row[0],
        fk_issue=row[1],
        fk_initiator=row[2],
        fk_initiating_comment=row[3],
        fk_bot_tracking_comment=row[4],
        poll_question=row[5],
        poll_created_at=row[6],
        poll_closed=row[7],
        teams=parse_teams(row[8]),
    )


def insert_poll(
    cur: PgCursor,
    *,
    issue_id: int,
    initiator_id: int,
    initiating_comment_id: int,
    bot_tracking_comment_id: int,
    question: str,
    teams: Iterable[str],
    created_at: datetime | None = None,
) -> Poll:
    """Insert an open poll for an issue.

    Args:
        cur: Database cursor (must be inside a transaction).
        issue_id: Issue the poll is raised on.
        initiator_id: User who started the poll.
        initiating_comment_id: Comment that started the poll.
        bot_tracking_comment_id: Bot comment edited as responses arrive.
        question: Free-text poll question.
        teams: Team labels the poll targets.
        created_at: Naive UTC creation time; defaults to now.

    Returns:
        The inserted Poll.

    Raises:
        DuplicatePollError: If the issue already has a poll.
        psycopg2.Error: On foreign-key violations (unknown issue/user/comment).
    """
    try:
        cur.execute(
            f"""
            INSERT INTO poll (
                fk_issue, fk_initiator, fk_initiating_comment,
                fk_bot_tracking_comment, poll_question, poll_created_at,
                poll_closed, poll_teams
            )
            VALUES (%s, %s, %s, %s, %s, %s, false, %s)
            RETURNING {_POLL_COLUMNS}
            """,
            (
                issue_id,
                initiator_id,
                initiating_comment_id,
                bot_tracking_comment_id,
                question,
                created_at or utc_now_naive(),
                serialize_teams(teams),
            ),
        )
    except psycopg2.Error as e:
        if is_unique_violation(e):
            raise DuplicatePollError(f"issue {issue_id} already has a poll") from e
        raise
    return _row_to_poll(cur.fetchone())


def get_poll(cur: PgCursor, poll_id: int) -> Poll | None:
    cur.execute(f"SELECT {_POLL_COLUMNS} FROM poll WHERE id = %s", (poll_id,))
    row = cur.fetchone()
    return _row_to_poll(row) if row else None


def get_poll_by_issue(cur: PgCursor, issue_id: int) -> Poll | None:
    cur.execute(f"SELECT {_POLL_COLUMNS} FROM poll WHERE fk_issue = %s", (issue_id,))
    row = cur.fetchone()
    return _row_to_poll(row) if row else None


def list_open_polls(cur: PgCursor) -> list[Poll]:
    cur.execute(
        f"""
        SELECT {_POLL_COLUMNS} FROM poll
        WHERE poll_closed = false
        ORDER BY poll_created_at, id
        """
    )
    return [_row_to_poll(row) for row in cur.fetchall()]


def close_poll(cur: PgCursor, poll_id: int) -> bool:
    """Flip a poll to closed.

    Returns:
        True if the poll was open and is now closed; False if it was
        already closed or does not exist.
    """
    cur.execute(
        "UPDATE poll SET poll_closed = true WHERE id = %s AND poll_closed = false",
        (poll_id,),
    )
    return cur.rowcount == 1


def delete_poll(cur: PgCursor, poll_id: int) -> bool:
    """Delete a poll; its response requests go with it via ON DELETE CASCADE."""
    cur.execute("DELETE FROM poll WHERE id = %s", (poll_id,))
    return cur.rowcount == 1


def insert_response_requests(
    cur: PgCursor,
    poll_id: int,
    respondents: Iterable[tuple[int, bool]],
) -> list[PollResponseRequest]:
    """Ask each respondent to answer the poll.

    Args:
        cur: Database cursor (must be inside a transaction).
        poll_id: Owning poll.
        respondents: (respondent user id, already responded) pairs.

    Returns:
        The inserted requests, in input order.

    Raises:
        DuplicateResponseRequestError: If a respondent was already asked.
    """
    inserted = []
    try:
        for respondent_id, responded in respondents:
            cur.execute(
                """
                INSERT INTO poll_response_request (fk_poll, fk_respondent, responded)
                VALUES (%s, %s, %s)
                RETURNING id, fk_poll, fk_respondent, responded
                """,
                (poll_id, respondent_id, responded),
            )
            row = cur.fetchone()
            inserted.append(
                PollResponseRequest(
                    id=row[0], fk_poll=row[1], fk_respondent=row[2], responded=row[3]
                )
            )
    except psycopg2.Error as e:
        if is_unique_violation(e):
            raise DuplicateResponseRequestError(
                f"duplicate response request for poll {poll_id}"
            ) from e
        raise
    return inserted


def list_response_requests(
    cur: PgCursor, poll_id: int
) -> list[tuple[GitHubUser, PollResponseRequest]]:
    """Response requests of a poll paired with their respondent, by login."""
    cur.execute(
        """
        SELECT u.id, u.login, r.id, r.fk_poll, r.fk_respondent, r.responded
        FROM poll_response_request r
        JOIN githubuser u ON u.id = r.fk_respondent
        WHERE r.fk_poll = %s
        ORDER BY u.login
        """,
        (poll_id,),
    )
    return [
        (
            GitHubUser(id=row[0], login=row[1]),
            PollResponseRequest(
                id=row[2], fk_poll=row[3], fk_respondent=row[4], responded=row[5]
            ),
        )
        for row in cur.fetchall()
    ]


def mark_responded(cur: PgCursor, *, poll_id: int, respondent_id: int) -> bool:
    """Record that a respondent answered.

    Returns:
        True if a pending request was flipped, False otherwise.
    """
    cur.execute(
        """
        UPDATE poll_response_request
        SET responded = true
        WHERE fk_poll = %s AND fk_respondent = %s AND responded = false
        """,
        (poll_id, respondent_id),
    )
    return cur.rowcount == 1

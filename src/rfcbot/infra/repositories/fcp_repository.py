"""FCP repository - proposals, review requests, concerns, feedback requests.

Uses raw SQL with psycopg2 (no ORM). Review requests and concerns are
deleted with their proposal (ON DELETE CASCADE).
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from psycopg2.extensions import cursor as PgCursor

from rfcbot.domain.models import (
    FcpConcern,
    FcpDisposition,
    FcpProposal,
    FcpReviewRequest,
    FeedbackRequest,
    GitHubUser,
)

_PROPOSAL_COLUMNS = """
    id, fk_issue, fk_initiator, fk_initiating_comment, disposition,
    fk_bot_tracking_comment, fcp_start, fcp_closed
"""

_CONCERN_COLUMNS = """
    id, fk_proposal, fk_initiator, fk_resolved_comment, name, fk_initiating_comment
"""

_PROPOSAL_COLUMNS_P = """
    p.id, p.fk_issue, p.fk_initiator, p.fk_initiating_comment, p.disposition,
    p.fk_bot_tracking_comment, p.fcp_start, p.fcp_closed
"""

_CONCERN_COLUMNS_C = """
    c.id, c.fk_proposal, c.fk_initiator, c.fk_resolved_comment, c.name,
    c.fk_initiating_comment
"""

_FEEDBACK_COLUMNS = "id, fk_initiator, fk_requested, fk_feedback_comment, fk_issue"


def _row_to_proposal(row: tuple) -> FcpProposal:
    return FcpProposal(
        id=row[0],
        fk_issue=row[1],
        fk_initiator=row[2],
        fk_initiating_comment=row[3],
        disposition=FcpDisposition(row[4]),
        fk_bot_tracking_comment=row[5],
        fcp_start=row[6],
        fcp_closed=row[7],
    )


def _row_to_concern(row: tuple) -> FcpConcern:
    return FcpConcern(
        id=row[0],
        fk_proposal=row[1],
        fk_initiator=row[2],
        fk_resolved_comment=row[3],
        name=row[4],
        fk_initiating_comment=row[5],
    )


def _row_to_feedback(row: tuple) -> FeedbackRequest:
    return FeedbackRequest(
        id=row[0],
        fk_initiator=row[1],
        fk_requested=row[2],
        fk_feedback_comment=row[3],
        fk_issue=row[4],
    )


# ── Proposals ─────────────────────────────────────────────────────────────────


def get_proposal_by_issue(cur: PgCursor, issue_id: int) -> FcpProposal | None:
    cur.execute(
        f"SELECT {_PROPOSAL_COLUMNS} FROM fcp_proposal WHERE fk_issue = %s",
        (issue_id,),
    )
    row = cur.fetchone()
    return _row_to_proposal(row) if row else None


def insert_proposal(
    cur: PgCursor,
    *,
    issue_id: int,
    initiator_id: int,
    initiating_comment_id: int,
    disposition: FcpDisposition,
    bot_tracking_comment_id: int,
) -> FcpProposal:
    cur.execute(
        f"""
        INSERT INTO fcp_proposal (
            fk_issue, fk_initiator, fk_initiating_comment, disposition,
            fk_bot_tracking_comment, fcp_start, fcp_closed
        )
        VALUES (%s, %s, %s, %s, %s, NULL, false)
        RETURNING {_PROPOSAL_COLUMNS}
        """,
        (
            issue_id,
            initiator_id,
            initiating_comment_id,
            disposition.value,
            bot_tracking_comment_id,
        ),
    )
    return _row_to_proposal(cur.fetchone())


def delete_proposal(cur: PgCursor, proposal_id: int) -> bool:
    cur.execute("DELETE FROM fcp_proposal WHERE id = %s", (proposal_id,))
    return cur.rowcount == 1


def list_pending_proposals(cur: PgCursor) -> list[FcpProposal]:
    """Proposals whose final comment period has not started."""
    cur.execute(
        f"SELECT {_PROPOSAL_COLUMNS} FROM fcp_proposal WHERE fcp_start IS NULL ORDER BY id"
    )
    return [_row_to_proposal(row) for row in cur.fetchall()]


def list_finished_proposals(cur: PgCursor, started_before: datetime) -> list[FcpProposal]:
    """Proposals that started on or before `started_before` and are not closed."""
    cur.execute(
        f"""
        SELECT {_PROPOSAL_COLUMNS} FROM fcp_proposal
        WHERE fcp_start <= %s AND fcp_closed = false
        ORDER BY id
        """,
        (started_before,),
    )
    return [_row_to_proposal(row) for row in cur.fetchall()]


def mark_started(cur: PgCursor, proposal_id: int, started_at: datetime) -> None:
    cur.execute(
        "UPDATE fcp_proposal SET fcp_start = %s WHERE id = %s",
        (started_at, proposal_id),
    )


def mark_closed(cur: PgCursor, proposal_id: int) -> None:
    cur.execute("UPDATE fcp_proposal SET fcp_closed = true WHERE id = %s", (proposal_id,))


# ── Review requests ───────────────────────────────────────────────────────────


def insert_review_requests(
    cur: PgCursor, proposal_id: int, reviewers: Iterable[tuple[int, bool]]
) -> None:
    """Create review requests from (reviewer id, reviewed) pairs."""
    for reviewer_id, reviewed in reviewers:
        cur.execute(
            """
            INSERT INTO fcp_review_request (fk_proposal, fk_reviewer, reviewed)
            VALUES (%s, %s, %s)
            ON CONFLICT (fk_proposal, fk_reviewer) DO NOTHING
            """,
            (proposal_id, reviewer_id, reviewed),
        )


def list_review_requests(
    cur: PgCursor, proposal_id: int
) -> list[tuple[GitHubUser, FcpReviewRequest]]:
    """Review requests paired with their reviewer, ordered by login."""
    cur.execute(
        """
        SELECT u.id, u.login, r.id, r.fk_proposal, r.fk_reviewer, r.reviewed
        FROM fcp_review_request r
        JOIN githubuser u ON u.id = r.fk_reviewer
        WHERE r.fk_proposal = %s
        ORDER BY u.login
        """,
        (proposal_id,),
    )
    return [
        (
            GitHubUser(id=row[0], login=row[1]),
            FcpReviewRequest(
                id=row[2], fk_proposal=row[3], fk_reviewer=row[4], reviewed=row[5]
            ),
        )
        for row in cur.fetchall()
    ]


def mark_reviewed(cur: PgCursor, *, proposal_id: int, reviewer_id: int) -> bool:
    cur.execute(
        """
        UPDATE fcp_review_request SET reviewed = true
        WHERE fk_proposal = %s AND fk_reviewer = %s AND reviewed = false
        """,
        (proposal_id, reviewer_id),
    )
    return cur.rowcount == 1


def mark_reviewed_by_logins(cur: PgCursor, proposal_id: int, logins: Iterable[str]) -> int:
    """Mark review requests reviewed for the given reviewer logins.

    Returns:
        Number of requests flipped to reviewed.
    """
    logins = list(logins)
    if not logins:
        return 0
    cur.execute(
        """
        UPDATE fcp_review_request r SET reviewed = true
        FROM githubuser u
        WHERE r.fk_reviewer = u.id
          AND r.fk_proposal = %s
          AND u.login = ANY(%s)
          AND r.reviewed = false
        """,
        (proposal_id, logins),
    )
    return cur.rowcount


# ── Concerns ──────────────────────────────────────────────────────────────────


def get_concern(
    cur: PgCursor, proposal_id: int, name: str, *, initiator_id: int | None = None
) -> FcpConcern | None:
    query = f"SELECT {_CONCERN_COLUMNS} FROM fcp_concern WHERE fk_proposal = %s AND name = %s"
    params: list = [proposal_id, name]
    if initiator_id is not None:
        query += " AND fk_initiator = %s"
        params.append(initiator_id)
    cur.execute(query, params)
    row = cur.fetchone()
    return _row_to_concern(row) if row else None


def insert_concern(
    cur: PgCursor,
    *,
    proposal_id: int,
    initiator_id: int,
    name: str,
    initiating_comment_id: int,
) -> bool:
    cur.execute(
        """
        INSERT INTO fcp_concern (
            fk_proposal, fk_initiator, fk_resolved_comment, name, fk_initiating_comment
        )
        VALUES (%s, %s, NULL, %s, %s)
        ON CONFLICT (fk_proposal, name) DO NOTHING
        """,
        (proposal_id, initiator_id, name, initiating_comment_id),
    )
    return cur.rowcount == 1


def resolve_concern(cur: PgCursor, concern_id: int, resolved_comment_id: int) -> None:
    cur.execute(
        "UPDATE fcp_concern SET fk_resolved_comment = %s WHERE id = %s",
        (resolved_comment_id, concern_id),
    )


def list_concerns_with_authors(
    cur: PgCursor, proposal_id: int
) -> list[tuple[GitHubUser, FcpConcern]]:
    """Concerns paired with the user who raised them, ordered by name."""
    cur.execute(
        f"""
        SELECT u.id, u.login, {_CONCERN_COLUMNS_C}
        FROM fcp_concern c
        JOIN githubuser u ON u.id = c.fk_initiator
        WHERE c.fk_proposal = %s
        ORDER BY c.name
        """,
        (proposal_id,),
    )
    return [
        (GitHubUser(id=row[0], login=row[1]), _row_to_concern(row[2:]))
        for row in cur.fetchall()
    ]


# ── Feedback requests ─────────────────────────────────────────────────────────


def get_feedback_request(
    cur: PgCursor, *, requested_id: int, issue_id: int
) -> FeedbackRequest | None:
    cur.execute(
        f"""
        SELECT {_FEEDBACK_COLUMNS} FROM rfc_feedback_request
        WHERE fk_requested = %s AND fk_issue = %s
        """,
        (requested_id, issue_id),
    )
    row = cur.fetchone()
    return _row_to_feedback(row) if row else None


def insert_feedback_request(
    cur: PgCursor, *, initiator_id: int, requested_id: int, issue_id: int
) -> bool:
    cur.execute(
        """
        INSERT INTO rfc_feedback_request (fk_initiator, fk_requested, fk_feedback_comment, fk_issue)
        VALUES (%s, %s, NULL, %s)
        ON CONFLICT (fk_requested, fk_issue) DO NOTHING
        """,
        (initiator_id, requested_id, issue_id),
    )
    return cur.rowcount == 1


def set_feedback_comment(cur: PgCursor, request_id: int, comment_id: int) -> None:
    cur.execute(
        "UPDATE rfc_feedback_request SET fk_feedback_comment = %s WHERE id = %s",
        (comment_id, request_id),
    )


# ── Listings for the API ──────────────────────────────────────────────────────


def list_open_issue_proposals(cur: PgCursor) -> list[tuple[FcpProposal, int, str, str]]:
    """Proposals on open issues with (issue number, repository, title)."""
    cur.execute(
        f"""
        SELECT {_PROPOSAL_COLUMNS_P},
               i.number, i.repository, i.title
        FROM fcp_proposal p
        JOIN issue i ON i.id = p.fk_issue
        WHERE i.open = true
        ORDER BY i.repository, i.number
        """
    )
    return [(_row_to_proposal(row[:8]), row[8], row[9], row[10]) for row in cur.fetchall()]


def list_pending_reviews_for_user(cur: PgCursor, user_id: int) -> list[tuple[FcpProposal, int, str, str]]:
    """Unstarted proposals on open issues still waiting on this reviewer."""
    cur.execute(
        f"""
        SELECT {_PROPOSAL_COLUMNS_P},
               i.number, i.repository, i.title
        FROM fcp_review_request r
        JOIN fcp_proposal p ON p.id = r.fk_proposal
        JOIN issue i ON i.id = p.fk_issue
        WHERE r.fk_reviewer = %s
          AND r.reviewed = false
          AND p.fcp_start IS NULL
          AND i.open = true
        ORDER BY i.repository, i.number
        """,
        (user_id,),
    )
    return [(_row_to_proposal(row[:8]), row[8], row[9], row[10]) for row in cur.fetchall()]


def list_open_feedback_requests_for_user(
    cur: PgCursor, user_id: int
) -> list[tuple[FeedbackRequest, int, str, str]]:
    """Feedback requests the user has not answered, on open issues."""
    cur.execute(
        """
        SELECT f.id, f.fk_initiator, f.fk_requested, f.fk_feedback_comment, f.fk_issue,
               i.number, i.repository, i.title
        FROM rfc_feedback_request f
        JOIN issue i ON i.id = f.fk_issue
        WHERE f.fk_requested = %s
          AND f.fk_feedback_comment IS NULL
          AND i.open = true
        ORDER BY i.repository, i.number
        """,
        (user_id,),
    )
    return [(_row_to_feedback(row[:5]), row[5], row[6], row[7]) for row in cur.fetchall()]

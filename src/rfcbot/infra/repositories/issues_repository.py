"""Issues and issue comments repository.

Uses raw SQL with psycopg2 (no ORM). Rows mirror GitHub: the primary keys
are GitHub ids, and upserts overwrite the mutable fields.
"""

from psycopg2.extensions import cursor as PgCursor

from rfcbot.domain.models import Issue, IssueComment

_ISSUE_COLUMNS = """
    id, number, fk_user, open, is_pull_request, title, body, locked,
    closed_at, created_at, updated_at, labels, repository
"""

_COMMENT_COLUMNS = "id, fk_issue, fk_user, body, created_at, updated_at, repository"


def _row_to_issue(row: tuple) -> Issue:
    return Issue(
        id=row[0],
        number=row[1],
        fk_user=row[2],
        open=row[3],
        is_pull_request=row[4],
        title=row[5],
        body=row[6],
        locked=row[7],
        closed_at=row[8],
        created_at=row[9],
        updated_at=row[10],
        labels=tuple(row[11] or ()),
        repository=row[12],
    )


def _row_to_comment(row: tuple) -> IssueComment:
    return IssueComment(
        id=row[0],
        fk_issue=row[1],
        fk_user=row[2],
        body=row[3],
        created_at=row[4],
        updated_at=row[5],
        repository=row[6],
    )


def upsert_issue(cur: PgCursor, issue: Issue) -> None:
    cur.execute(
        f"""
        INSERT INTO issue ({_ISSUE_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (id) DO UPDATE
        SET open            = EXCLUDED.open,
            is_pull_request = EXCLUDED.is_pull_request,
            title           = EXCLUDED.title,
            body            = EXCLUDED.body,
            locked          = EXCLUDED.locked,
            closed_at       = EXCLUDED.closed_at,
            updated_at      = EXCLUDED.updated_at,
            labels          = EXCLUDED.labels,
            repository      = EXCLUDED.repository,
            number          = EXCLUDED.number
        """,
        (
            issue.id,
            issue.number,
            issue.fk_user,
            issue.open,
            issue.is_pull_request,
            issue.title,
            issue.body,
            issue.locked,
            issue.closed_at,
            issue.created_at,
            issue.updated_at,
            list(issue.labels),
            issue.repository,
        ),
    )


def get_issue(cur: PgCursor, issue_id: int) -> Issue | None:
    cur.execute(f"SELECT {_ISSUE_COLUMNS} FROM issue WHERE id = %s", (issue_id,))
    row = cur.fetchone()
    return _row_to_issue(row) if row else None


def get_issue_by_number(cur: PgCursor, repository: str, number: int) -> Issue | None:
    cur.execute(
        f"SELECT {_ISSUE_COLUMNS} FROM issue WHERE repository = %s AND number = %s",
        (repository, number),
    )
    row = cur.fetchone()
    return _row_to_issue(row) if row else None


def upsert_comment(cur: PgCursor, comment: IssueComment) -> None:
    cur.execute(
        f"""
        INSERT INTO issuecomment ({_COMMENT_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (id) DO UPDATE
        SET body       = EXCLUDED.body,
            updated_at = EXCLUDED.updated_at
        """,
        (
            comment.id,
            comment.fk_issue,
            comment.fk_user,
            comment.body,
            comment.created_at,
            comment.updated_at,
            comment.repository,
        ),
    )


def insert_comment_if_absent(cur: PgCursor, comment: IssueComment) -> bool:
    """Insert a comment unless a webhook already stored it.

    Returns:
        True if inserted, False if a row with that id existed.
    """
    cur.execute(
        f"""
        INSERT INTO issuecomment ({_COMMENT_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (id) DO NOTHING
        """,
        (
            comment.id,
            comment.fk_issue,
            comment.fk_user,
            comment.body,
            comment.created_at,
            comment.updated_at,
            comment.repository,
        ),
    )
    return cur.rowcount == 1


def get_comment(cur: PgCursor, comment_id: int) -> IssueComment | None:
    cur.execute(
        f"SELECT {_COMMENT_COLUMNS} FROM issuecomment WHERE id = %s", (comment_id,)
    )
    row = cur.fetchone()
    return _row_to_comment(row) if row else None

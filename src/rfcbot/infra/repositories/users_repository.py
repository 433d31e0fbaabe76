"""GitHub users repository.

Uses raw SQL with psycopg2 (no ORM). githubuser.id is GitHub's user id, so
upserts are keyed by id and keep the login current (logins can be renamed).
"""

from psycopg2.extensions import cursor as PgCursor

from rfcbot.domain.models import GitHubUser


def _row_to_user(row: tuple) -> GitHubUser:
    return GitHubUser(id=row[0], login=row[1])


def upsert_user(cur: PgCursor, *, user_id: int, login: str) -> GitHubUser:
    """Insert a user or refresh its login.

    A different user that previously held the same login (renamed account)
    releases it first so the UNIQUE(login) constraint holds.
    """
    cur.execute(
        """
        UPDATE githubuser SET login = '__renamed__' || id::text
        WHERE login = %s AND id <> %s
        """,
        (login, user_id),
    )
    cur.execute(
        """
        INSERT INTO githubuser (id, login)
        VALUES (%s, %s)
        ON CONFLICT (id) DO UPDATE SET login = EXCLUDED.login
        RETURNING id, login
        """,
        (user_id, login),
    )
    return _row_to_user(cur.fetchone())


def get_user(cur: PgCursor, user_id: int) -> GitHubUser | None:
    cur.execute("SELECT id, login FROM githubuser WHERE id = %s", (user_id,))
    row = cur.fetchone()
    return _row_to_user(row) if row else None


def get_user_by_login(cur: PgCursor, login: str) -> GitHubUser | None:
    cur.execute("SELECT id, login FROM githubuser WHERE login = %s", (login,))
    row = cur.fetchone()
    return _row_to_user(row) if row else None

"""Teams and team memberships repository.

Uses raw SQL with psycopg2 (no ORM).

Membership writes are keyed by resolved ids, never by raw names: the
member login and the team ping string are looked up first, and an
unknown login or ping raises before anything is written. Adding an
existing membership or removing a missing one is a no-op, so both
operations behave as set insert/remove.
"""

from typing import Iterable

from psycopg2.extensions import cursor as PgCursor

from rfcbot.domain.models import GitHubUser, Team
from rfcbot.infra.db import fetchall
from rfcbot.infra.repositories.users_repository import get_user_by_login


class UnknownUserError(LookupError):
    """No githubuser row for the given login."""


class UnknownTeamError(LookupError):
    """No teams row for the given ping string."""


def _row_to_team(row: tuple) -> Team:
    return Team(id=row[0], name=row[1], ping=row[2], label=row[3])


def upsert_team(cur: PgCursor, *, name: str, ping: str, label: str) -> Team:
    """Create a team or refresh its name and label, keyed by ping."""
    cur.execute(
        """
        INSERT INTO teams (name, ping, label)
        VALUES (%s, %s, %s)
        ON CONFLICT (ping) DO UPDATE
        SET name = EXCLUDED.name, label = EXCLUDED.label
        RETURNING id, name, ping, label
        """,
        (name, ping, label),
    )
    return _row_to_team(cur.fetchone())


def get_team_by_ping(cur: PgCursor, ping: str) -> Team | None:
    cur.execute("SELECT id, name, ping, label FROM teams WHERE ping = %s", (ping,))
    row = cur.fetchone()
    return _row_to_team(row) if row else None


def list_teams(cur: PgCursor) -> list[Team]:
    rows = fetchall(cur, "SELECT id, name, ping, label FROM teams ORDER BY ping")
    return [_row_to_team(row) for row in rows]


def _resolve(cur: PgCursor, login: str, ping: str) -> tuple[GitHubUser, Team]:
    user = get_user_by_login(cur, login)
    if user is None:
        raise UnknownUserError(login)
    team = get_team_by_ping(cur, ping)
    if team is None:
        raise UnknownTeamError(ping)
    return user, team


def add_membership(cur: PgCursor, *, login: str, ping: str) -> bool:
    """Make `login` a member of the team pinged as `ping`.

    Returns:
        True if a membership row was created, False if it already existed.

    Raises:
        UnknownUserError: If no user has this login.
        UnknownTeamError: If no team has this ping string.
    """
    user, team = _resolve(cur, login, ping)
    cur.execute(
        """
        INSERT INTO memberships (fk_member, fk_team)
        VALUES (%s, %s)
        ON CONFLICT (fk_member, fk_team) DO NOTHING
        """,
        (user.id, team.id),
    )
    return cur.rowcount == 1


def remove_membership(cur: PgCursor, *, login: str, ping: str) -> bool:
    """Remove `login` from the team pinged as `ping`.

    Returns:
        True if a membership row was deleted, False if there was none.

    Raises:
        UnknownUserError: If no user has this login.
        UnknownTeamError: If no team has this ping string.
    """
    user, team = _resolve(cur, login, ping)
    cur.execute(
        "DELETE FROM memberships WHERE fk_member = %s AND fk_team = %s",
        (user.id, team.id),
    )
    return cur.rowcount > 0


def list_team_members(cur: PgCursor, ping: str) -> list[GitHubUser]:
    """Members of one team, ordered by login."""
    cur.execute(
        """
        SELECT u.id, u.login
        FROM memberships m
        JOIN githubuser u ON u.id = m.fk_member
        JOIN teams t ON t.id = m.fk_team
        WHERE t.ping = %s
        ORDER BY u.login
        """,
        (ping,),
    )
    return [GitHubUser(id=row[0], login=row[1]) for row in cur.fetchall()]


def subteam_members(cur: PgCursor, labels: Iterable[str]) -> list[GitHubUser]:
    """Users belonging to any team whose label is among `labels`.

    Each user appears once even if they are in several tagged teams.
    """
    labels = list(labels)
    if not labels:
        return []
    cur.execute(
        """
        SELECT DISTINCT u.id, u.login
        FROM teams t
        JOIN memberships m ON m.fk_team = t.id
        JOIN githubuser u ON u.id = m.fk_member
        WHERE t.label = ANY(%s)
        ORDER BY u.login
        """,
        (labels,),
    )
    return [GitHubUser(id=row[0], login=row[1]) for row in cur.fetchall()]

"""Manage team memberships.

Same operation the membership migrations perform, for changes that should
not wait for a schema release. The user must already be mirrored (they have
commented or opened an issue in a scraped repository).

Usage:
    DATABASE_URL=... python scripts/manage_membership.py add <login> <team-ping>
    DATABASE_URL=... python scripts/manage_membership.py remove <login> <team-ping>
    DATABASE_URL=... python scripts/manage_membership.py list <team-ping>
    DATABASE_URL=... python scripts/manage_membership.py teams

Team pings look like "rust-lang/lang".
"""

from __future__ import annotations

import argparse
import os
import sys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage rfcbot team memberships")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="add a user to a team")
    add.add_argument("login")
    add.add_argument("ping")

    remove = sub.add_parser("remove", help="remove a user from a team")
    remove.add_argument("login")
    remove.add_argument("ping")

    list_ = sub.add_parser("list", help="list members of a team")
    list_.add_argument("ping")

    sub.add_parser("teams", help="list known teams")

    return parser


def run(args: argparse.Namespace) -> int:
    # Import after env validation so a missing DB doesn't blow up on import
    from rfcbot.infra.db import txn
    from rfcbot.infra.repositories.memberships_repository import (
        UnknownTeamError,
        UnknownUserError,
        add_membership,
        get_team_by_ping,
        list_team_members,
        list_teams,
        remove_membership,
    )

    try:
        with txn() as cur:
            if args.command == "add":
                created = add_membership(cur, login=args.login, ping=args.ping)
                print(f"{'Added' if created else 'Already a member:'} {args.login} -> {args.ping}")
            elif args.command == "remove":
                removed = remove_membership(cur, login=args.login, ping=args.ping)
                print(f"{'Removed' if removed else 'Not a member:'} {args.login} -> {args.ping}")
            elif args.command == "teams":
                for team in list_teams(cur):
                    print(f"{team.ping}\t{team.label}\t{team.name}")
            else:
                if get_team_by_ping(cur, args.ping) is None:
                    raise UnknownTeamError(args.ping)
                for member in list_team_members(cur, args.ping):
                    print(member.login)
    except UnknownUserError as e:
        print(f"ERROR: unknown user {e}", file=sys.stderr)
        return 1
    except UnknownTeamError as e:
        print(f"ERROR: unknown team {e}", file=sys.stderr)
        return 1

    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if not os.environ.get("DATABASE_URL"):
        print("ERROR: set DATABASE_URL environment variable", file=sys.stderr)
        return 1

    return run(args)


if __name__ == "__main__":
    sys.exit(main())

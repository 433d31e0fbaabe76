"""Add petrochenkov to the compiler team.

Logins and pings are resolved to ids inside the statement; if either row is
missing nothing is inserted. Re-running is a no-op.

Revision ID: 002_add_petrochenkov_compiler
Revises: 001_baseline_schema
Create Date: 2017-08-04
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from migrations.env_helpers import read_sql

revision = "002_add_petrochenkov_compiler"
down_revision = "001_baseline_schema"
branch_labels = None
depends_on = None

_MEMBER_LOGIN = "petrochenkov"
_TEAM_PING = "rust-lang/compiler"


def upgrade() -> None:
    op.execute(sa.text(read_sql("add_membership")).bindparams(login=_MEMBER_LOGIN, ping=_TEAM_PING))


def downgrade() -> None:
    op.execute(sa.text(read_sql("remove_membership")).bindparams(login=_MEMBER_LOGIN, ping=_TEAM_PING))

"""Add cramertj to the lang team.

Revision ID: 003_add_cramertj_lang
Revises: 002_add_petrochenkov_compiler
Create Date: 2017-08-31
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from migrations.env_helpers import read_sql

revision = "003_add_cramertj_lang"
down_revision = "002_add_petrochenkov_compiler"
branch_labels = None
depends_on = None

_MEMBER_LOGIN = "cramertj"
_TEAM_PING = "rust-lang/lang"


def upgrade() -> None:
    op.execute(sa.text(read_sql("add_membership")).bindparams(login=_MEMBER_LOGIN, ping=_TEAM_PING))


def downgrade() -> None:
    op.execute(sa.text(read_sql("remove_membership")).bindparams(login=_MEMBER_LOGIN, ping=_TEAM_PING))

"""Poll tracking: poll and poll_response_request.

One poll per issue (UNIQUE fk_issue). Response requests are unique per
(poll, respondent) and are removed with their poll (ON DELETE CASCADE).

Revision ID: 004_create_poll_table
Revises: 003_add_cramertj_lang
Create Date: 2018-06-20
"""
from __future__ import annotations

from alembic import op

from migrations.env_helpers import read_sql

revision = "004_create_poll_table"
down_revision = "003_add_cramertj_lang"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(read_sql("004_create_poll_table"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS poll_response_request")
    op.execute("DROP TABLE IF EXISTS poll")

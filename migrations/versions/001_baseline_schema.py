"""Baseline schema: GitHub mirror, teams, memberships and FCP tracking.

Revision ID: 001_baseline_schema
Revises:
Create Date: 2017-07-20
"""

from __future__ import annotations

from alembic import op

from migrations.env_helpers import read_sql

# revision identifiers, used by Alembic.
revision = "001_baseline_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(read_sql("001_baseline_schema"))


def downgrade() -> None:
    for table in (
        "githubsync",
        "rfc_feedback_request",
        "fcp_concern",
        "fcp_review_request",
        "fcp_proposal",
        "issuecomment",
        "issue",
        "memberships",
        "teams",
        "githubuser",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table}")

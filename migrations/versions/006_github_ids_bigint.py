"""Widen GitHub ids to BIGINT.

githubuser, issue and issuecomment use GitHub's own ids as primary keys, and
current issue and comment ids are above the INTEGER range. Every column that
references them is widened with them. Poll and proposal ids stay SERIAL.

Revision ID: 006_github_ids_bigint
Revises: 005_github_webhook_deliveries
Create Date: 2018-07-16
"""
from __future__ import annotations

from alembic import op

from migrations.env_helpers import read_sql

revision = "006_github_ids_bigint"
down_revision = "005_github_webhook_deliveries"
branch_labels = None
depends_on = None

# Same columns as sql/006_github_ids_bigint.sql, narrowed back on downgrade
_GITHUB_ID_COLUMNS = (
    ("githubuser", ("id",)),
    ("memberships", ("fk_member",)),
    ("issue", ("id", "fk_user")),
    ("issuecomment", ("id", "fk_issue", "fk_user")),
    ("fcp_proposal", ("fk_issue", "fk_initiator", "fk_initiating_comment", "fk_bot_tracking_comment")),
    ("fcp_review_request", ("fk_reviewer",)),
    ("fcp_concern", ("fk_initiator", "fk_resolved_comment", "fk_initiating_comment")),
    ("rfc_feedback_request", ("fk_initiator", "fk_requested", "fk_feedback_comment", "fk_issue")),
    ("poll", ("fk_issue", "fk_initiator", "fk_initiating_comment", "fk_bot_tracking_comment")),
    ("poll_response_request", ("fk_respondent",)),
)


def upgrade() -> None:
    op.execute(read_sql("006_github_ids_bigint"))


def downgrade() -> None:
    # fails with "integer out of range" once an id above 2^31 - 1 is stored
    for table, columns in reversed(_GITHUB_ID_COLUMNS):
        alters = ", ".join(f"ALTER COLUMN {column} TYPE INTEGER" for column in columns)
        op.execute(f"ALTER TABLE {table} {alters}")

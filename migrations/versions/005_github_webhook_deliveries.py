"""Receipt table for GitHub webhook deliveries (redelivery dedupe).

Revision ID: 005_github_webhook_deliveries
Revises: 004_create_poll_table
Create Date: 2018-07-02
"""
from __future__ import annotations

from alembic import op

from migrations.env_helpers import read_sql

revision = "005_github_webhook_deliveries"
down_revision = "004_create_poll_table"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(read_sql("005_github_webhook_deliveries"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS github_webhook_deliveries")

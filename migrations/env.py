"""Alembic environment for the rfcbot schema.

Revisions are plain SQL (see migrations/sql); there is no SQLAlchemy
metadata and autogenerate is not used. Each revision runs in its own
transaction so a failing membership data unit leaves the earlier schema
units applied.
"""

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from migrations.env_helpers import _get_database_url, describe_url

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_CONFIGURE_OPTS = {
    "target_metadata": None,
    "transaction_per_migration": True,
}


def run_migrations_offline(url: str) -> None:
    """Write the upgrade SQL to stdout (alembic upgrade --sql)."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_CONFIGURE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_CONFIGURE_OPTS)
        with context.begin_transaction():
            context.run_migrations()


def main() -> None:
    url = _get_database_url()
    logger.info("migrating %s", describe_url(url))
    if context.is_offline_mode():
        run_migrations_offline(url)
    else:
        run_migrations_online(url)


main()

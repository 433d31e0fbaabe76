"""Tests for migrations/env.py DSN-to-URL conversion and the revision chain."""

from __future__ import annotations

import importlib.util
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Make migrations.env importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import _get_database_url, _libpq_dsn_to_url, describe_url, read_sql

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


class TestLibpqDsnToUrl:
    def test_unix_socket(self):
        dsn = "dbname=rfcbot user=rfcbot-sa password=s3cret host=/var/run/postgresql"
        result = _libpq_dsn_to_url(dsn)
        assert result == (
            "postgresql+psycopg2://rfcbot-sa:s3cret@/rfcbot"
            "?host=%2Fvar%2Frun%2Fpostgresql"
        )

    def test_tcp_host(self):
        dsn = "dbname=rfcbot user=admin password=pw host=localhost port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert result == "postgresql+psycopg2://admin:pw@localhost:5432/rfcbot"

    def test_default_port(self):
        dsn = "dbname=db user=u password=p host=myhost"
        result = _libpq_dsn_to_url(dsn)
        assert result == "postgresql+psycopg2://u:p@myhost:5432/db"

    def test_special_chars_encoded(self):
        dsn = "dbname=db user=u@domain password=p@ss=word host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "u%40domain" in result
        assert "p%40ss%3Dword" in result

    def test_quoted_password_with_spaces(self):
        dsn = "dbname=db user=u password='p@ss w0rd' host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "p%40ss+w0rd" in result

    def test_quoted_password_with_escaped_quote(self):
        dsn = r"dbname=db user=u password='it\'s' host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "it%27s" in result

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        dsn = "dbname=db user=u host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "from-env" in result

    def test_db_password_env_not_used_when_dsn_has_password(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        dsn = "dbname=db user=u password=from-dsn host=h port=5432"
        result = _libpq_dsn_to_url(dsn)
        assert "from-dsn" in result
        assert "from-env" not in result


class TestGetDatabaseUrl:
    def test_url_passthrough(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}):
            assert _get_database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_dsn_converted(self):
        dsn = "dbname=rfcbot user=sa password=pw host=/var/run/postgresql"
        with patch.dict(os.environ, {"DATABASE_URL": dsn}):
            assert _get_database_url().startswith("postgresql+psycopg2://")

    def test_missing_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
                _get_database_url()

    def test_postgres_scheme_normalized(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgres://u:p@h/db"}):
            assert _get_database_url().startswith("postgresql+psycopg2://")

    def test_url_db_password_fallback(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql://u@h/db", "DB_PASSWORD": "secret"}):
            assert "secret" in _get_database_url()

    def test_already_has_driver_not_doubled(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}):
            assert _get_database_url().count("+psycopg2") == 1


def _load_revisions() -> dict[str, str | None]:
    revisions = {}
    for path in sorted((MIGRATIONS_DIR / "versions").glob("*.py")):
        spec = importlib.util.spec_from_file_location(f"_rev_{path.stem}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        revisions[module.revision] = module.down_revision
    return revisions


class TestRevisionChain:
    def test_single_linear_history(self):
        revisions = _load_revisions()
        roots = [rev for rev, down in revisions.items() if down is None]
        assert roots == ["001_baseline_schema"]

        # every revision is the parent of at most one other
        parents = [down for down in revisions.values() if down is not None]
        assert len(parents) == len(set(parents))
        assert all(parent in revisions for parent in parents)

    def test_head_widens_github_ids(self):
        revisions = _load_revisions()
        parents = set(revisions.values())
        heads = [rev for rev in revisions if rev not in parents]
        assert heads == ["006_github_ids_bigint"]


class TestSchemaSql:
    def test_baseline_tables(self):
        sql = read_sql("001_baseline_schema")
        for table in (
            "githubuser",
            "teams",
            "memberships",
            "issue",
            "issuecomment",
            "fcp_proposal",
            "fcp_review_request",
            "fcp_concern",
            "rfc_feedback_request",
            "githubsync",
        ):
            assert f"CREATE TABLE {table} (" in sql

    def test_poll_tables(self):
        sql = read_sql("004_create_poll_table")
        assert "CREATE TABLE poll (" in sql
        assert "CREATE TABLE poll_response_request (" in sql

    def test_github_id_columns_widened_to_bigint(self):
        sql = read_sql("006_github_ids_bigint")
        spec = importlib.util.spec_from_file_location(
            "_rev_006", MIGRATIONS_DIR / "versions" / "006_github_ids_bigint.py"
        )
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        widened = 0
        for table, columns in module._GITHUB_ID_COLUMNS:
            assert f"ALTER TABLE {table}" in sql
            for column in columns:
                widened += 1
                assert f"ALTER COLUMN {column} TYPE BIGINT" in sql
        assert sql.count("TYPE BIGINT") == widened

    def test_membership_units_bind_login_and_ping(self):
        for name in ("add_membership", "remove_membership"):
            sql = read_sql(name)
            assert ":login" in sql
            assert ":ping" in sql

    def test_every_sql_file_used_by_a_revision(self):
        sources = "".join(p.read_text() for p in (MIGRATIONS_DIR / "versions").glob("*.py"))
        for sql_file in (MIGRATIONS_DIR / "sql").glob("*.sql"):
            assert f'read_sql("{sql_file.stem}")' in sources

    def test_missing_sql_file_raises(self):
        with pytest.raises(FileNotFoundError):
            read_sql("999_nope")


class TestDescribeUrl:
    def test_password_masked(self):
        described = describe_url("postgresql+psycopg2://rfcbot:s3cret@db:5432/rfcbot")
        assert "s3cret" not in described
        assert described.endswith("rfcbot:***@db:5432/rfcbot")

"""Tests for GitHub payload parsing and mirroring."""

from contextlib import contextmanager
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from rfcbot.github import ingest
from rfcbot.github.models import (
    InvalidPayloadError,
    parse_comment,
    parse_issue,
    repository_from_url,
)

from tests.helpers import comment_json, issue_json, make_issue, user_json


@contextmanager
def _fake_txn(cur):
    yield cur


class TestParseIssue:
    def test_fields(self):
        parsed = parse_issue(issue_json(labels=("T-lang", "final-comment-period")))

        issue = parsed.issue
        assert issue.id == 100
        assert issue.number == 42
        assert issue.open is True
        assert issue.is_pull_request is False
        assert issue.labels == ("T-lang", "final-comment-period")
        assert issue.repository == "rust-lang/rfcs"
        assert issue.created_at == datetime(2018, 6, 20, 6, 28, 54)
        assert issue.updated_at == datetime(2018, 6, 21, 10, 0, 0)
        assert parsed.author.login == "alice"

    def test_pull_request_and_closed(self):
        issue = parse_issue(issue_json(state="closed", pull_request=True)).issue
        assert issue.is_pull_request is True
        assert issue.open is False

    def test_explicit_repository_wins(self):
        issue = parse_issue(issue_json(), "rust-lang/rust").issue
        assert issue.repository == "rust-lang/rust"

    def test_missing_user(self):
        data = issue_json()
        del data["user"]
        with pytest.raises(InvalidPayloadError):
            parse_issue(data)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("id", "not-a-number"),
            ("number", True),
            ("labels", ["T-lang"]),
            ("labels", "T-lang"),
            ("created_at", "20 June 2018"),
            ("closed_at", 1529476134),
            ("user", "alice"),
        ],
    )
    def test_malformed_fields(self, field, value):
        data = issue_json()
        data[field] = value
        with pytest.raises(InvalidPayloadError):
            parse_issue(data)

    def test_large_github_ids(self):
        issue = parse_issue(issue_json(issue_id=3_100_000_000)).issue
        assert issue.id == 3_100_000_000


class TestParseComment:
    def test_issue_number_from_url(self):
        parsed = parse_comment(comment_json(issue_number=1234))
        assert parsed.issue_number == 1234
        assert parsed.comment.fk_issue == 0
        assert parsed.comment.repository == "rust-lang/rfcs"

    def test_issue_id_passed_through(self):
        parsed = parse_comment(comment_json(), "rust-lang/rfcs", issue_id=100)
        assert parsed.comment.fk_issue == 100

    def test_bad_issue_url(self):
        data = comment_json()
        data["issue_url"] = "https://api.github.com/repos/rust-lang/rfcs/issues/abc"
        with pytest.raises(InvalidPayloadError):
            parse_comment(data)

    def test_bad_updated_at(self):
        data = comment_json()
        data["updated_at"] = "yesterday"
        with pytest.raises(InvalidPayloadError):
            parse_comment(data)


class TestRepositoryFromUrl:
    def test_ok(self):
        assert repository_from_url("https://api.github.com/repos/rust-lang/rfcs/issues/1") == "rust-lang/rfcs"

    @pytest.mark.parametrize("url", ["https://api.github.com/orgs/rust-lang", "https://api.github.com/repos/rust-lang"])
    def test_invalid(self, url):
        with pytest.raises(InvalidPayloadError):
            repository_from_url(url)


class TestStore:
    def test_store_issue_upserts_author_first(self):
        cur = MagicMock()
        parsed = parse_issue(issue_json())
        calls = MagicMock()
        with patch.object(ingest.users_repository, "upsert_user", calls.upsert_user), \
             patch.object(ingest.issues_repository, "upsert_issue", calls.upsert_issue):
            ingest.store_issue(cur, parsed)

        assert [c[0] for c in calls.mock_calls] == ["upsert_user", "upsert_issue"]

    def test_store_comment_resolves_issue(self):
        cur = MagicMock()
        parsed = parse_comment(comment_json())
        with patch.object(ingest.issues_repository, "get_issue_by_number", return_value=make_issue(issue_id=555)), \
             patch.object(ingest.users_repository, "upsert_user"), \
             patch.object(ingest.issues_repository, "upsert_comment") as mock_upsert:
            assert ingest.store_comment(cur, parsed) is True

        assert mock_upsert.call_args[0][1].fk_issue == 555

    def test_store_comment_unknown_issue(self):
        cur = MagicMock()
        parsed = parse_comment(comment_json())
        with patch.object(ingest.issues_repository, "get_issue_by_number", return_value=None), \
             patch.object(ingest.issues_repository, "upsert_comment") as mock_upsert:
            assert ingest.store_comment(cur, parsed) is False
        mock_upsert.assert_not_called()


class TestIngestSince:
    def test_counts_and_skips_malformed(self):
        client = MagicMock()
        bad_issue = issue_json(issue_id=101, number=43)
        del bad_issue["created_at"]
        client.issues_since.return_value = [issue_json(), bad_issue]
        client.comments_since.return_value = [
            comment_json(1000),
            {"id": 1001, "user": user_json()},
            comment_json(1002, issue_number=99),
        ]

        cur = MagicMock()
        with patch.object(ingest, "txn", lambda: _fake_txn(cur)), \
             patch.object(ingest, "store_issue") as mock_store_issue, \
             patch.object(ingest, "store_comment", side_effect=[True, False]) as mock_store_comment:
            result = ingest.ingest_since(client, "rust-lang/rfcs", datetime(2018, 1, 1))

        assert result == (1, 1)
        mock_store_issue.assert_called_once()
        assert mock_store_comment.call_count == 2

"""Tests for the FCP dashboard endpoints."""

from contextlib import contextmanager
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

import rfcbot.api.routes.fcp as fcp_module
from rfcbot.api.factory import create_app
from rfcbot.domain.models import FeedbackRequest

from tests.helpers import make_concern, make_proposal, make_review, make_user


@contextmanager
def _fake_txn():
    yield MagicMock()


@pytest.fixture
def client():
    with patch.object(fcp_module, "txn", _fake_txn):
        yield TestClient(create_app(role="public"))


class TestListFcps:
    def test_lists_proposals_with_reviews_and_concerns(self, client):
        proposal = make_proposal(fcp_start=datetime(2018, 6, 20, 12, 0))
        with patch.object(fcp_module.fcp_repository, "list_open_issue_proposals",
                          return_value=[(proposal, 42, "rust-lang/rfcs", "Add a feature")]), \
             patch.object(fcp_module.fcp_repository, "list_review_requests",
                          return_value=[(make_user(1, "alice"), make_review(1, True))]), \
             patch.object(fcp_module.fcp_repository, "list_concerns_with_authors",
                          return_value=[(make_user(2, "bob"), make_concern("naming"))]):
            response = client.get("/fcp/all")

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["fcp"]["disposition"] == "merge"
        assert entry["fcp"]["fcp_start"] == "2018-06-20T12:00:00"
        assert entry["issue"] == {
            "number": 42,
            "repository": "rust-lang/rfcs",
            "title": "Add a feature",
            "url": "https://github.com/rust-lang/rfcs/issues/42",
        }
        assert entry["reviews"] == [{"reviewer": "alice", "reviewed": True}]
        assert entry["concerns"] == [{"name": "naming", "initiator": "bob", "resolved": False}]

    def test_empty(self, client):
        with patch.object(fcp_module.fcp_repository, "list_open_issue_proposals", return_value=[]):
            response = client.get("/fcp/all")
        assert response.json() == []


class TestMemberNags:
    def test_unknown_user(self, client):
        with patch.object(fcp_module.users_repository, "get_user_by_login", return_value=None):
            response = client.get("/fcp/ghost")
        assert response.status_code == 404

    def test_pending_work(self, client):
        feedback = FeedbackRequest(id=9, fk_initiator=1, fk_requested=2, fk_feedback_comment=None, fk_issue=101)
        with patch.object(fcp_module.users_repository, "get_user_by_login", return_value=make_user(2, "bob")), \
             patch.object(fcp_module.fcp_repository, "list_pending_reviews_for_user",
                          return_value=[(make_proposal(), 42, "rust-lang/rfcs", "Add a feature")]), \
             patch.object(fcp_module.fcp_repository, "list_open_feedback_requests_for_user",
                          return_value=[(feedback, 43, "rust-lang/rfcs", "Another")]):
            response = client.get("/fcp/bob")

        assert response.status_code == 200
        data = response.json()
        assert data["user"] == {"id": 2, "login": "bob"}
        assert data["pending_reviews"][0]["fcp"]["id"] == 7
        assert data["feedback_requests"] == [
            {
                "id": 9,
                "fk_initiator": 1,
                "issue": {
                    "number": 43,
                    "repository": "rust-lang/rfcs",
                    "title": "Another",
                    "url": "https://github.com/rust-lang/rfcs/issues/43",
                },
            }
        ]

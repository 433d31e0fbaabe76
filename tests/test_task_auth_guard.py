"""Tests that all task endpoints require authentication.

Verifies that endpoints behind require_task_auth return 401
when called without credentials, and reach the handler when auth is mocked.
"""

from __future__ import annotations

from datetime import datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from rfcbot.api.factory import create_app


@pytest.fixture
def worker_client():
    """Create a test client for the worker app (no auth mock)."""
    app = create_app(role="worker")
    return TestClient(app)


class TestNagUpdateAuth:
    """Auth tests for POST /tasks/nags/update."""

    def test_no_auth_returns_401(self, worker_client):
        with patch("rfcbot.api.routes.tasks_nags.nag.update_nags") as mock_update:
            response = worker_client.post(
                "/tasks/nags/update",
                json={"task_id": "nags-update:1", "comment_id": 1},
            )
        assert response.status_code == 401
        mock_update.assert_not_called()

    def test_invalid_bearer_returns_401(self, worker_client, monkeypatch):
        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "https://worker.example.com")
        with patch("rfcbot.api.task_auth.id_token.verify_oauth2_token", side_effect=ValueError("bad")):
            response = worker_client.post(
                "/tasks/nags/update",
                json={"task_id": "nags-update:1", "comment_id": 1},
                headers={"Authorization": "Bearer not-a-jwt"},
            )
        assert response.status_code == 401

    def test_with_valid_auth_missing_fields_400(self, worker_client):
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True):
            response = worker_client.post("/tasks/nags/update", json={})
        assert response.status_code == 400

    def test_with_valid_auth_runs_update(self, worker_client):
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True), \
             patch("rfcbot.api.routes.tasks_nags.nag.update_nags", return_value={"status": "processed"}) as mock_update:
            response = worker_client.post(
                "/tasks/nags/update",
                json={"task_id": "nags-update:1", "comment_id": 1},
            )
        assert response.status_code == 200
        assert response.json() == {"ok": True, "status": "processed"}
        mock_update.assert_called_once_with(1)

    def test_handler_error_returns_500(self, worker_client):
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True), \
             patch("rfcbot.api.routes.tasks_nags.nag.update_nags", side_effect=RuntimeError("db down")):
            response = worker_client.post(
                "/tasks/nags/update",
                json={"task_id": "nags-update:1", "comment_id": 1},
            )
        assert response.status_code == 500
        assert response.json()["ok"] is False


class TestNagEvaluateAuth:
    """Auth tests for POST /tasks/nags/evaluate."""

    def test_no_auth_returns_401(self, worker_client):
        response = worker_client.post("/tasks/nags/evaluate")
        assert response.status_code == 401

    def test_with_valid_auth_returns_counts(self, worker_client):
        counts = {"pending": 1, "started": 0, "finished": 0, "closed": 0, "failed": 0}
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True), \
             patch("rfcbot.api.routes.tasks_nags.nag.evaluate_nags", return_value=counts):
            response = worker_client.post("/tasks/nags/evaluate")
        assert response.status_code == 200
        assert response.json() == {"ok": True, **counts}


class TestGithubScrapeAuth:
    """Auth tests for POST /tasks/github/scrape."""

    def test_no_auth_returns_401(self, worker_client):
        response = worker_client.post("/tasks/github/scrape")
        assert response.status_code == 401

    def test_with_valid_auth_scrapes(self, worker_client):
        since = datetime(2018, 6, 1)
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True), \
             patch("rfcbot.api.routes.tasks_github.scraper.most_recent_update", return_value=since), \
             patch(
                 "rfcbot.api.routes.tasks_github.scraper.scrape_github",
                 return_value={"status": "ok", "repos": 3, "failed_repos": 0},
             ) as mock_scrape:
            response = worker_client.post("/tasks/github/scrape")

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "since": "2018-06-01T00:00:00",
            "status": "ok",
            "repos": 3,
            "failed_repos": 0,
        }
        mock_scrape.assert_called_once_with(since)

    def test_failed_scrape_not_ok(self, worker_client):
        with patch("rfcbot.api.task_auth.verify_task_auth", return_value=True), \
             patch("rfcbot.api.routes.tasks_github.scraper.most_recent_update", return_value=datetime(2018, 6, 1)), \
             patch(
                 "rfcbot.api.routes.tasks_github.scraper.scrape_github",
                 return_value={"status": "failed", "repos": 0, "failed_repos": 0},
             ):
            response = worker_client.post("/tasks/github/scrape")
        assert response.status_code == 200
        assert response.json()["ok"] is False


class TestLocalDevSecret:
    def test_internal_secret_accepted_with_local_audience(self, worker_client, monkeypatch):
        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "rfcbot-tasks-local")
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        with patch("rfcbot.api.routes.tasks_nags.nag.evaluate_nags", return_value={}):
            response = worker_client.post(
                "/tasks/nags/evaluate", headers={"X-Internal-Task-Secret": "s3cret"}
            )
        assert response.status_code == 200

    def test_internal_secret_rejected_elsewhere(self, worker_client, monkeypatch):
        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "https://worker.example.com")
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        response = worker_client.post(
            "/tasks/nags/evaluate", headers={"X-Internal-Task-Secret": "s3cret"}
        )
        assert response.status_code == 401

    def test_wrong_internal_secret_rejected(self, worker_client, monkeypatch):
        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "rfcbot-tasks-local")
        monkeypatch.setenv("INTERNAL_TASK_SECRET", "s3cret")
        response = worker_client.post(
            "/tasks/nags/evaluate", headers={"X-Internal-Task-Secret": "guess"}
        )
        assert response.status_code == 401


class TestServiceAccounts:
    """Cloud Tasks and Cloud Scheduler may sign with different accounts."""

    _TASKS_SA = "tasks@rfcbot.iam.gserviceaccount.com"
    _SCHEDULER_SA = "scheduler@rfcbot.iam.gserviceaccount.com"

    def _verify(self, monkeypatch, email):
        from rfcbot.api.task_auth import verify_task_oidc

        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "https://worker.example.com")
        monkeypatch.setenv("TASKS_OIDC_SERVICE_ACCOUNT", f"{self._TASKS_SA}, {self._SCHEDULER_SA}")
        with patch(
            "rfcbot.api.task_auth.id_token.verify_oauth2_token", return_value={"email": email}
        ):
            return verify_task_oidc("token")

    def test_each_listed_account_accepted(self, monkeypatch):
        assert self._verify(monkeypatch, self._TASKS_SA)
        assert self._verify(monkeypatch, self._SCHEDULER_SA)

    def test_other_account_rejected(self, monkeypatch):
        assert not self._verify(monkeypatch, "intruder@example.com")

    def test_missing_audience_fails_closed(self, monkeypatch):
        from rfcbot.api.task_auth import verify_task_oidc

        monkeypatch.delenv("TASKS_OIDC_AUDIENCE", raising=False)
        assert not verify_task_oidc("token")

    def test_bearer_scheme_case_insensitive(self, worker_client, monkeypatch):
        monkeypatch.setenv("TASKS_OIDC_AUDIENCE", "https://worker.example.com")
        monkeypatch.delenv("TASKS_OIDC_SERVICE_ACCOUNT", raising=False)
        with patch(
            "rfcbot.api.task_auth.id_token.verify_oauth2_token", return_value={"email": "x"}
        ) as mock_verify, patch("rfcbot.api.routes.tasks_nags.nag.evaluate_nags", return_value={}):
            response = worker_client.post(
                "/tasks/nags/evaluate", headers={"Authorization": "bearer abc.def.ghi"}
            )
        assert response.status_code == 200
        assert mock_verify.call_args.args[0] == "abc.def.ghi"

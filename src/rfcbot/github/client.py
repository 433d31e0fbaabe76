"""GitHub REST API v3 client.

Thin wrapper over a requests.Session:
- token auth, user agent and UTC time zone on every request
- Link-header pagination with a short delay between pages
- non-success statuses raise GitHubApiError (body kept for diagnostics)

Never log the token or request bodies.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Iterator

import requests

from rfcbot import config
from rfcbot.infra.time import format_github_timestamp
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

BASE_URL = "https://api.github.com"

# Delay between paginated requests (seconds)
PAGE_DELAY = 0.3

PER_PAGE = 100

HTTP_TIMEOUT = 30

_ACCEPT_V3 = "application/vnd.github.v3"


class GitHubApiError(Exception):
    """GitHub answered with an unexpected status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"GitHub API returned {status_code}")
        self.status_code = status_code
        self.body = body


class GitHubClient:
    """Client for the subset of the GitHub API rfcbot uses.

    Args:
        token: Access token; defaults to GITHUB_ACCESS_TOKEN.
        user_agent: User-Agent header; defaults to GITHUB_USER_AGENT.
        session: Injected session (tests).
        page_delay: Seconds to sleep between pages.
    """

    def __init__(
        self,
        token: str | None = None,
        user_agent: str | None = None,
        session: requests.Session | None = None,
        page_delay: float = PAGE_DELAY,
    ) -> None:
        self._token = token if token is not None else config.github_access_token()
        self._user_agent = user_agent or config.github_user_agent()
        self._session = session or requests.Session()
        self._page_delay = page_delay
        self.rate_limit_remaining: int | None = None
        self.rate_limit_reset: int | None = None

    # ── Low-level ─────────────────────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self._token}",
            "User-Agent": self._user_agent,
            "Time-Zone": "UTC",
            "Accept": _ACCEPT_V3,
        }

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        expected: tuple[int, ...] = (200,),
    ) -> requests.Response:
        logger.debug(
            "github request",
            extra={"extra_fields": safe_log_context(method=method, url=url)},
        )
        response = self._session.request(
            method,
            url,
            params=params,
            json=json,
            headers=self._headers(),
            timeout=HTTP_TIMEOUT,
        )
        self._record_rate_limit(response)
        if response.status_code not in expected:
            logger.warning(
                "github request failed",
                extra={
                    "extra_fields": safe_log_context(
                        method=method, url=url, status=response.status_code
                    )
                },
            )
            raise GitHubApiError(response.status_code, response.text)
        return response

    def _record_rate_limit(self, response: requests.Response) -> None:
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is not None and remaining.isdigit():
            self.rate_limit_remaining = int(remaining)
        if reset is not None and reset.isdigit():
            self.rate_limit_reset = int(reset)

    @staticmethod
    def next_page(response: requests.Response) -> str | None:
        """URL of the rel="next" page from the Link header, if any."""
        link = response.links.get("next")
        return link.get("url") if link else None

    def _paginate(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> Iterator[dict[str, Any]]:
        response = self._request("GET", url, params=params)
        yield from response.json()
        next_url = self.next_page(response)
        while next_url:
            time.sleep(self._page_delay)
            # next links already carry the query string
            response = self._request("GET", next_url)
            yield from response.json()
            next_url = self.next_page(response)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def org_repos(self, org: str) -> list[str]:
        """Full names ("org/repo") of an organization's repositories."""
        repos = []
        for repo in self._paginate(f"{BASE_URL}/orgs/{org}/repos", {"per_page": PER_PAGE}):
            name = repo.get("name")
            if not isinstance(name, str):
                raise GitHubApiError(200, "repository entry without a name")
            repos.append(f"{org}/{name}")
        return repos

    def issues_since(self, repo: str, since: datetime) -> list[dict[str, Any]]:
        return list(
            self._paginate(
                f"{BASE_URL}/repos/{repo}/issues",
                {
                    "state": "all",
                    "since": format_github_timestamp(since),
                    "per_page": PER_PAGE,
                    "direction": "asc",
                },
            )
        )

    def comments_since(self, repo: str, since: datetime) -> list[dict[str, Any]]:
        return list(
            self._paginate(
                f"{BASE_URL}/repos/{repo}/issues/comments",
                {
                    "sort": "created",
                    "direction": "asc",
                    "since": format_github_timestamp(since),
                    "per_page": PER_PAGE,
                },
            )
        )

    # ── Writes ────────────────────────────────────────────────────────────────

    def add_label(self, repo: str, issue_number: int, label: str) -> None:
        self._request(
            "POST",
            f"{BASE_URL}/repos/{repo}/issues/{issue_number}/labels",
            json=[label],
        )

    def new_comment(self, repo: str, issue_number: int, body: str) -> dict[str, Any]:
        response = self._request(
            "POST",
            f"{BASE_URL}/repos/{repo}/issues/{issue_number}/comments",
            json={"body": body},
            expected=(201,),
        )
        return response.json()

    def edit_comment(self, repo: str, comment_id: int, body: str) -> dict[str, Any]:
        response = self._request(
            "PATCH",
            f"{BASE_URL}/repos/{repo}/issues/comments/{comment_id}",
            json={"body": body},
        )
        return response.json()


_client: GitHubClient | None = None


def get_github_client() -> GitHubClient:
    """Process-wide client, created on first use."""
    global _client
    if _client is None:
        _client = GitHubClient()
    return _client

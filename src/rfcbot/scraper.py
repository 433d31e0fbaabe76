"""Periodic GitHub scrape.

Mirrors issues and comments of every repository in the configured orgs.
Webhooks keep the mirror current between runs; the scrape fills gaps.
"""

from __future__ import annotations

from datetime import datetime

from rfcbot import config
from rfcbot.github.client import GitHubApiError, GitHubClient, get_github_client
from rfcbot.github.ingest import ingest_since
from rfcbot.infra.db import txn
from rfcbot.infra.repositories import sync_repository
from rfcbot.infra.time import utc_now_naive
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

# First scrape starts here when no successful sync was recorded
SCRAPE_EPOCH = datetime(2015, 5, 15)


def _get_github_client() -> GitHubClient:
    return get_github_client()


def most_recent_update() -> datetime:
    """Start time of the last successful scrape, or SCRAPE_EPOCH."""
    with txn() as cur:
        last = sync_repository.last_successful_sync(cur)
    return last or SCRAPE_EPOCH


def scrape_github(since: datetime, client: GitHubClient | None = None) -> dict:
    """Scrape all configured orgs for activity since `since`.

    Listing an org's repositories failing aborts the run (recorded as an
    unsuccessful sync). A failing repository is logged and skipped.

    Returns:
        {"status": "ok" | "failed", "repos": int, "failed_repos": int}
    """
    client = client or _get_github_client()
    start_time = utc_now_naive()

    repos: list[str] = []
    for org in config.gh_orgs():
        try:
            repos.extend(client.org_repos(org))
        except GitHubApiError as e:
            logger.error(
                "unable to list repositories",
                extra={"extra_fields": safe_log_context(org=org, status=e.status_code)},
            )
            with txn() as cur:
                sync_repository.record_sync(
                    cur,
                    successful=False,
                    ran_at=start_time,
                    message=f"unable to list repositories for {org}",
                )
            return {"status": "failed", "repos": 0, "failed_repos": 0}

    logger.info(
        "scraping github",
        extra={"extra_fields": safe_log_context(since=since.isoformat(), repos=len(repos))},
    )

    failed = 0
    for repo in repos:
        try:
            issues, comments = ingest_since(client, repo, since)
            logger.info(
                "repository scraped",
                extra={
                    "extra_fields": safe_log_context(
                        repo=repo, issues=issues, comments=comments
                    )
                },
            )
        except Exception:
            failed += 1
            logger.exception(
                "unable to scrape repository",
                extra={"extra_fields": safe_log_context(repo=repo)},
            )

    with txn() as cur:
        sync_repository.record_sync(cur, successful=True, ran_at=start_time)

    return {"status": "ok", "repos": len(repos), "failed_repos": failed}

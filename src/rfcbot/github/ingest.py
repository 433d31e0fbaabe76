"""Store GitHub issues and comments in the local mirror.

Authors are upserted before the rows that reference them.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from rfcbot.github.client import GitHubClient
from rfcbot.github.models import (
    InvalidPayloadError,
    ParsedComment,
    ParsedIssue,
    parse_comment,
    parse_issue,
)
from rfcbot.infra.db import txn
from rfcbot.infra.repositories import issues_repository, users_repository
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)


def store_issue(cur: PgCursor, parsed: ParsedIssue) -> None:
    users_repository.upsert_user(cur, user_id=parsed.author.id, login=parsed.author.login)
    issues_repository.upsert_issue(cur, parsed.issue)


def store_comment(cur: PgCursor, parsed: ParsedComment) -> bool:
    """Store a comment, resolving its issue by number when needed.

    Returns:
        False if the comment's issue is not mirrored yet (nothing stored).
    """
    comment = parsed.comment
    if not comment.fk_issue:
        issue = issues_repository.get_issue_by_number(
            cur, comment.repository, parsed.issue_number
        )
        if issue is None:
            return False
        comment = replace(comment, fk_issue=issue.id)

    users_repository.upsert_user(cur, user_id=parsed.author.id, login=parsed.author.login)
    issues_repository.upsert_comment(cur, comment)
    return True


def ingest_since(client: GitHubClient, repo: str, since: datetime) -> tuple[int, int]:
    """Mirror the issues and comments of `repo` updated since `since`.

    Issues are stored before comments so comments can resolve their issue.

    Returns:
        (issues stored, comments stored)
    """
    issues = client.issues_since(repo, since)
    comments = client.comments_since(repo, since)

    stored_issues = 0
    stored_comments = 0
    with txn() as cur:
        for data in issues:
            try:
                store_issue(cur, parse_issue(data, repo))
                stored_issues += 1
            except InvalidPayloadError as e:
                logger.warning(
                    "skipping malformed issue",
                    extra={"extra_fields": safe_log_context(repo=repo, error=str(e))},
                )

        for data in comments:
            try:
                parsed = parse_comment(data, repo)
            except InvalidPayloadError as e:
                logger.warning(
                    "skipping malformed comment",
                    extra={"extra_fields": safe_log_context(repo=repo, error=str(e))},
                )
                continue
            if store_comment(cur, parsed):
                stored_comments += 1
            else:
                logger.warning(
                    "comment references unknown issue",
                    extra={
                        "extra_fields": safe_log_context(
                            repo=repo,
                            comment_id=parsed.comment.id,
                            issue_number=parsed.issue_number,
                        )
                    },
                )

    return stored_issues, stored_comments

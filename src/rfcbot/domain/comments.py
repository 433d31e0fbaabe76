"""Bot comment rendering and posting.

Bodies are plain markdown. The FCP status comment is edited in place as
reviews and concerns change; its checkbox lines are parsed back by the nag
workflow, so the `* [x] @login` format must stay stable.
"""

from __future__ import annotations

from typing import Any, Sequence

from rfcbot import config
from rfcbot.domain.models import FcpConcern, FcpDisposition, FcpReviewRequest, GitHubUser, Issue
from rfcbot.github.client import GitHubClient
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

RFCBOT_DOCS_URL = "https://github.com/dikaiosune/rust-dashboard/blob/master/RFCBOT.md"


class CommentNotPostedError(Exception):
    """Comment was not sent (posting disabled or issue closed)."""

    pass


def comment_url(issue: Issue, comment_id: int) -> str:
    return f"https://github.com/{issue.repository}/issues/{issue.number}#issuecomment-{comment_id}"


def render_fcp_proposed(
    issue: Issue,
    initiator: GitHubUser,
    disposition: FcpDisposition,
    reviewers: Sequence[tuple[GitHubUser, FcpReviewRequest]] = (),
    concerns: Sequence[tuple[GitHubUser, FcpConcern]] = (),
) -> str:
    """Status comment listing reviewers and concerns."""
    lines = [
        f"Team member @{initiator.login} has proposed to {disposition.value} this. "
        "The next step is review by the rest of the tagged teams:",
        "",
    ]
    for member, review_request in reviewers:
        box = "[x]" if review_request.reviewed else "[ ]"
        lines.append(f"* {box} @{member.login}")

    msg = "\n".join(lines) + "\n"

    if not concerns:
        msg += "\nNo concerns currently listed.\n"
    else:
        msg += "\nConcerns:\n\n"

    for _, concern in concerns:
        if concern.fk_resolved_comment is not None:
            msg += f"* ~~{concern.name}~~ resolved by {comment_url(issue, concern.fk_resolved_comment)}\n"
        else:
            msg += f"* {concern.name} ({comment_url(issue, concern.fk_initiating_comment)})\n"

    msg += (
        "\nOnce these reviewers reach consensus, this will enter its final "
        "comment period. If you spot a major issue that hasn't been raised "
        "at any point in this process, please speak up!\n"
    )
    msg += (
        f"\nSee [this document]({RFCBOT_DOCS_URL}) "
        "for info about what commands tagged team members can give me."
    )
    return msg


def render_proposal_cancelled(initiator: GitHubUser) -> str:
    return f"@{initiator.login} proposal cancelled."


def render_fcp_started(
    issue: Issue,
    initiator: GitHubUser,
    status_comment_id: int,
    added_label: bool,
) -> str:
    msg = (
        ":bell: **This is now entering its final comment period**, "
        f"as per the [review above]({comment_url(issue, status_comment_id)}). :bell:"
    )
    if not added_label:
        msg += (
            f"\n\n*psst @{initiator.login}, I wasn't able to add the "
            f"`{config.FCP_LABEL}` label, please do so.*"
        )
    return msg


def render_fcp_week_passed() -> str:
    return "The final comment period is now complete."


def post_comment(
    client: GitHubClient,
    issue: Issue,
    body: str,
    existing_comment_id: int | None = None,
) -> dict[str, Any]:
    """Create a comment, or edit `existing_comment_id` in place.

    Returns:
        The comment JSON returned by GitHub.

    Raises:
        CommentNotPostedError: If posting is disabled or the issue is closed.
        GitHubApiError: If GitHub rejects the request.
    """
    log_ctx = safe_log_context(repository=issue.repository, issue_number=issue.number)

    if not config.post_comments():
        logger.info("skipping comment, posting disabled", extra={"extra_fields": log_ctx})
        raise CommentNotPostedError("comment posting disabled")

    if not issue.open:
        logger.info("skipping comment, issue closed", extra={"extra_fields": log_ctx})
        raise CommentNotPostedError("issue is closed")

    if existing_comment_id is not None:
        return client.edit_comment(issue.repository, existing_comment_id, body)
    return client.new_comment(issue.repository, issue.number, body)

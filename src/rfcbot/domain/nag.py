"""FCP nag workflow.

Reacts to new issue comments (bot commands, feedback replies) and advances
outstanding proposals:

- pending proposals get their status comment refreshed and enter the final
  comment period once every reviewer signed off and no concern is open
- proposals whose FCP started FCP_LENGTH_DAYS ago are marked complete

Every proposal is evaluated in its own transaction; one failing proposal is
logged and does not block the rest.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Sequence

from psycopg2.extensions import cursor as PgCursor

from rfcbot import config
from rfcbot.domain.commands import (
    CommandParseError,
    FcpCancel,
    FcpPropose,
    FeedbackRequest,
    NewConcern,
    Reviewed,
    ResolveConcern,
    RfcBotCommand,
    parse_command,
)
from rfcbot.domain.comments import (
    CommentNotPostedError,
    post_comment,
    render_fcp_proposed,
    render_fcp_started,
    render_fcp_week_passed,
    render_proposal_cancelled,
)
from rfcbot.domain.models import FcpProposal, GitHubUser, Issue, IssueComment
from rfcbot.github.client import GitHubApiError, GitHubClient, get_github_client
from rfcbot.github.models import parse_comment
from rfcbot.infra.db import txn
from rfcbot.infra.repositories import (
    fcp_repository,
    issues_repository,
    memberships_repository,
    users_repository,
)
from rfcbot.infra.time import utc_now_naive
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)


class UnknownRequestedUserError(LookupError):
    """Feedback was requested from a login that is not mirrored."""

    pass


def _get_github_client() -> GitHubClient:
    return get_github_client()


# ── Comment handling ──────────────────────────────────────────────────────────


def update_nags(comment_id: int, client: GitHubClient | None = None) -> dict[str, Any]:
    """Handle a newly created issue comment, then evaluate all proposals.

    Commands from users outside the issue's tagged teams are ignored.
    Command failures are logged, not raised.

    Returns:
        {"status": "not_found" | "ignored" | "processed" | "failed" | "no_command"}
    """
    client = client or _get_github_client()

    with txn() as cur:
        comment = issues_repository.get_comment(cur, comment_id)
        issue = issues_repository.get_issue(cur, comment.fk_issue) if comment else None
        author = users_repository.get_user(cur, comment.fk_user) if comment else None
        members = memberships_repository.subteam_members(cur, issue.labels) if issue else []

    if comment is None or issue is None or author is None:
        logger.warning(
            "comment not found for nag update",
            extra={"extra_fields": safe_log_context(comment_id=comment_id)},
        )
        return {"status": "not_found"}

    log_ctx = safe_log_context(
        comment_id=comment_id, repository=issue.repository, issue_number=issue.number
    )

    try:
        command: RfcBotCommand | None = parse_command(comment.body)
    except CommandParseError:
        command = None

    if command is None:
        status = "no_command"
        try:
            with txn() as cur:
                resolve_applicable_feedback_requests(cur, author, issue, comment)
        except Exception:
            logger.exception(
                "unable to resolve feedback requests", extra={"extra_fields": log_ctx}
            )
    elif author.id not in {member.id for member in members}:
        logger.info("command author not in tagged teams", extra={"extra_fields": log_ctx})
        status = "ignored"
    else:
        logger.debug(
            "processing command",
            extra={"extra_fields": {**log_ctx, "command": type(command).__name__}},
        )
        try:
            with txn() as cur:
                process_command(cur, client, command, author, issue, comment, members)
            status = "processed"
        except Exception:
            logger.exception("unable to process command", extra={"extra_fields": log_ctx})
            status = "failed"

    try:
        evaluate_nags(client)
    except Exception:
        logger.exception("unable to evaluate proposals", extra={"extra_fields": log_ctx})

    return {"status": status}


def resolve_applicable_feedback_requests(
    cur: PgCursor, author: GitHubUser, issue: Issue, comment: IssueComment
) -> bool:
    """Mark the author's open feedback request on this issue as answered."""
    request = fcp_repository.get_feedback_request(cur, requested_id=author.id, issue_id=issue.id)
    if request is None or request.fk_feedback_comment is not None:
        return False
    fcp_repository.set_feedback_comment(cur, request.id, comment.id)
    return True


def process_command(
    cur: PgCursor,
    client: GitHubClient,
    command: RfcBotCommand,
    author: GitHubUser,
    issue: Issue,
    comment: IssueComment,
    members: Sequence[GitHubUser],
) -> None:
    """Apply a parsed command from a team member."""
    existing = fcp_repository.get_proposal_by_issue(cur, issue.id)

    if isinstance(command, FcpPropose):
        if existing is None:
            _propose_fcp(cur, client, command, author, issue, comment, members)
        return

    if isinstance(command, FeedbackRequest):
        requested = users_repository.get_user_by_login(cur, command.username)
        if requested is None:
            raise UnknownRequestedUserError(command.username)
        fcp_repository.insert_feedback_request(
            cur, initiator_id=author.id, requested_id=requested.id, issue_id=issue.id
        )
        return

    # remaining commands act on an existing proposal only
    if existing is None:
        return

    if isinstance(command, FcpCancel):
        cancel_fcp(cur, client, author, issue, existing)
    elif isinstance(command, Reviewed):
        fcp_repository.mark_reviewed(cur, proposal_id=existing.id, reviewer_id=author.id)
    elif isinstance(command, NewConcern):
        fcp_repository.insert_concern(
            cur,
            proposal_id=existing.id,
            initiator_id=author.id,
            name=command.name,
            initiating_comment_id=comment.id,
        )
    elif isinstance(command, ResolveConcern):
        concern = fcp_repository.get_concern(
            cur, existing.id, command.name, initiator_id=author.id
        )
        if concern is not None:
            fcp_repository.resolve_concern(cur, concern.id, comment.id)


def _store_bot_comment(cur: PgCursor, issue: Issue, data: dict[str, Any]) -> IssueComment:
    parsed = parse_comment(data, issue.repository, issue.id)
    users_repository.upsert_user(cur, user_id=parsed.author.id, login=parsed.author.login)
    if not issues_repository.insert_comment_if_absent(cur, parsed.comment):
        # a webhook for our own comment got there first
        issues_repository.upsert_comment(cur, parsed.comment)
    return parsed.comment


def _propose_fcp(
    cur: PgCursor,
    client: GitHubClient,
    command: FcpPropose,
    author: GitHubUser,
    issue: Issue,
    comment: IssueComment,
    members: Sequence[GitHubUser],
) -> FcpProposal:
    base = render_fcp_proposed(issue, author, command.disposition)
    tracking = _store_bot_comment(cur, issue, post_comment(client, issue, base))

    proposal = fcp_repository.insert_proposal(
        cur,
        issue_id=issue.id,
        initiator_id=author.id,
        initiating_comment_id=comment.id,
        disposition=command.disposition,
        bot_tracking_comment_id=tracking.id,
    )

    # the initiator is assumed to have reviewed their own proposal
    fcp_repository.insert_review_requests(
        cur, proposal.id, [(member.id, member.id == author.id) for member in members]
    )
    reviews = fcp_repository.list_review_requests(cur, proposal.id)

    body = render_fcp_proposed(issue, author, command.disposition, reviews)
    _store_bot_comment(cur, issue, post_comment(client, issue, body, tracking.id))

    logger.info(
        "fcp proposed",
        extra={
            "extra_fields": safe_log_context(
                proposal_id=proposal.id,
                repository=issue.repository,
                issue_number=issue.number,
                disposition=command.disposition.value,
                reviewers=len(reviews),
            )
        },
    )
    return proposal


def cancel_fcp(
    cur: PgCursor,
    client: GitHubClient,
    initiator: GitHubUser,
    issue: Issue,
    proposal: FcpProposal,
) -> None:
    """Delete a proposal (reviews and concerns cascade) and announce it."""
    fcp_repository.delete_proposal(cur, proposal.id)
    try:
        post_comment(client, issue, render_proposal_cancelled(initiator))
    except (CommentNotPostedError, GitHubApiError):
        logger.info(
            "cancellation comment not posted",
            extra={"extra_fields": safe_log_context(proposal_id=proposal.id)},
        )


# ── Review status ─────────────────────────────────────────────────────────────


def parse_reviewed_logins(body: str) -> list[str]:
    """Logins whose checkbox is ticked in a status comment body."""
    logins = []
    for line in body.splitlines():
        if not line.startswith("* ["):
            continue
        rest = line[len("* ["):]
        reviewed = rest.startswith("x")
        rest = rest.removeprefix("x] @").removeprefix(" ] @")
        tokens = rest.split()
        if not tokens:
            logger.warning("empty username in status comment checkbox line")
            continue
        if reviewed:
            logins.append(tokens[0])
    return logins


def update_proposal_review_status(cur: PgCursor, proposal: FcpProposal) -> int:
    """Copy ticked checkboxes from the tracking comment into review requests.

    Returns:
        Number of review requests newly marked reviewed.
    """
    if proposal.fcp_start is not None or proposal.fcp_closed:
        return 0

    tracking = issues_repository.get_comment(cur, proposal.fk_bot_tracking_comment)
    if tracking is None:
        logger.warning(
            "tracking comment missing",
            extra={"extra_fields": safe_log_context(proposal_id=proposal.id)},
        )
        return 0

    return fcp_repository.mark_reviewed_by_logins(
        cur, proposal.id, parse_reviewed_logins(tracking.body)
    )


# ── Evaluation ────────────────────────────────────────────────────────────────


def evaluate_nags(client: GitHubClient | None = None) -> dict[str, int]:
    """Advance pending proposals and close finished ones.

    Returns:
        Counters: pending, started, finished, closed, failed.
    """
    client = client or _get_github_client()
    counts = {"pending": 0, "started": 0, "finished": 0, "closed": 0, "failed": 0}

    with txn() as cur:
        pending = fcp_repository.list_pending_proposals(cur)
    counts["pending"] = len(pending)

    for proposal in pending:
        try:
            with txn() as cur:
                if _evaluate_pending(cur, client, proposal):
                    counts["started"] += 1
        except Exception:
            counts["failed"] += 1
            logger.exception(
                "unable to evaluate proposal",
                extra={"extra_fields": safe_log_context(proposal_id=proposal.id)},
            )

    cutoff = utc_now_naive() - timedelta(days=config.FCP_LENGTH_DAYS)
    with txn() as cur:
        finished = fcp_repository.list_finished_proposals(cur, cutoff)
    counts["finished"] = len(finished)

    for proposal in finished:
        try:
            with txn() as cur:
                _close_finished(cur, client, proposal)
            counts["closed"] += 1
        except Exception:
            counts["failed"] += 1
            logger.exception(
                "unable to close proposal",
                extra={"extra_fields": safe_log_context(proposal_id=proposal.id)},
            )

    logger.info("proposals evaluated", extra={"extra_fields": safe_log_context(**counts)})
    return counts


def _evaluate_pending(cur: PgCursor, client: GitHubClient, proposal: FcpProposal) -> bool:
    """Evaluate one pending proposal. Returns True if its FCP started."""
    initiator = users_repository.get_user(cur, proposal.fk_initiator)
    issue = issues_repository.get_issue(cur, proposal.fk_issue)
    if initiator is None or issue is None:
        raise LookupError(f"proposal {proposal.id} references missing rows")

    log_ctx = safe_log_context(
        proposal_id=proposal.id, repository=issue.repository, issue_number=issue.number
    )

    # closed before the FCP started: drop it entirely
    if not issue.open:
        cancel_fcp(cur, client, initiator, issue, proposal)
        logger.info("proposal cancelled on closed issue", extra={"extra_fields": log_ctx})
        return False

    update_proposal_review_status(cur, proposal)

    reviews = fcp_repository.list_review_requests(cur, proposal.id)
    concerns = fcp_repository.list_concerns_with_authors(cur, proposal.id)
    active_reviews = sum(1 for _, review in reviews if not review.reviewed)
    active_concerns = sum(1 for _, concern in concerns if concern.fk_resolved_comment is None)

    status_body = render_fcp_proposed(issue, initiator, proposal.disposition, reviews, concerns)
    previous = issues_repository.get_comment(cur, proposal.fk_bot_tracking_comment)
    if previous is None or previous.body != status_body:
        try:
            data = post_comment(client, issue, status_body, proposal.fk_bot_tracking_comment)
        except (CommentNotPostedError, GitHubApiError):
            logger.error("unable to update status comment", extra={"extra_fields": log_ctx})
            return False
        _store_bot_comment(cur, issue, data)

    if active_reviews or active_concerns:
        return False

    fcp_repository.mark_started(cur, proposal.id, utc_now_naive())
    logger.info("final comment period started", extra={"extra_fields": log_ctx})

    if config.post_comments():
        try:
            client.add_label(issue.repository, issue.number, config.FCP_LABEL)
            added_label = True
        except GitHubApiError:
            logger.warning("unable to add fcp label", extra={"extra_fields": log_ctx})
            added_label = False

        body = render_fcp_started(issue, initiator, proposal.fk_bot_tracking_comment, added_label)
        try:
            post_comment(client, issue, body)
        except (CommentNotPostedError, GitHubApiError):
            logger.error("unable to post fcp start comment", extra={"extra_fields": log_ctx})

    return True


def _close_finished(cur: PgCursor, client: GitHubClient, proposal: FcpProposal) -> None:
    issue = issues_repository.get_issue(cur, proposal.fk_issue)
    if issue is None:
        raise LookupError(f"proposal {proposal.id} references a missing issue")

    fcp_repository.mark_closed(cur, proposal.id)
    try:
        post_comment(client, issue, render_fcp_week_passed())
    except (CommentNotPostedError, GitHubApiError):
        logger.error(
            "unable to post fcp complete comment",
            extra={"extra_fields": safe_log_context(proposal_id=proposal.id)},
        )

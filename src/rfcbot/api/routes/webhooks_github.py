"""GitHub webhook route - public endpoint for repository events.

Security rules:
- Validate X-Hub-Signature-256 on every request.
- Never log payload or signature header.
- Return 5xx if storing or enqueue fails (so GitHub shows a failed delivery).
- No nag logic here - mirror the issue/comment and enqueue.
"""

from __future__ import annotations

from fastapi import APIRouter, Header, Request, Response

from rfcbot import config
from rfcbot.github.ingest import store_comment, store_issue
from rfcbot.github.models import InvalidPayloadError
from rfcbot.github.webhook import SignatureVerificationError, extract_event, verify_signature
from rfcbot.infra.db import txn
from rfcbot.infra.repositories import sync_repository
from rfcbot.observability.correlation import get_correlation_id
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context
from rfcbot.tasks.client import TasksClient

router = APIRouter(tags=["webhooks"])

logger = get_logger(__name__)

HANDLED_EVENTS = ("issues", "issue_comment")

_tasks_client: TasksClient | None = None


def _get_tasks_client() -> TasksClient:
    """Get tasks client instance (allows test injection)."""
    global _tasks_client
    if _tasks_client is None:
        _tasks_client = TasksClient()
    return _tasks_client


@router.post("/github-webhook")
async def github_webhook(
    request: Request,
    x_github_event: str = Header("", alias="X-GitHub-Event"),
    x_github_delivery: str = Header("", alias="X-GitHub-Delivery"),
    x_hub_signature_256: str | None = Header(None, alias="X-Hub-Signature-256"),
) -> Response:
    """Receive GitHub webhook deliveries.

    Returns:
        200 "pong" for ping, "ignored" for unhandled events, "duplicate" for
        redeliveries, "ok" once stored (and enqueued for new comments).
        400 if the signature or payload is invalid.
        500 if the secret is missing or storing/enqueue fails.
    """
    correlation_id = get_correlation_id()
    payload_bytes = await request.body()

    try:
        secret = config.github_webhook_secret()
    except RuntimeError:
        logger.error("webhook secret not configured")
        return Response(status_code=500, content="server configuration error")

    try:
        verify_signature(payload_bytes, x_hub_signature_256, secret)
    except SignatureVerificationError:
        logger.warning("github signature validation failed")
        return Response(status_code=400, content="invalid signature")

    log_ctx = safe_log_context(event=x_github_event, delivery=x_github_delivery)

    if x_github_event == "ping":
        return Response(status_code=200, content="pong")

    if x_github_event not in HANDLED_EVENTS:
        logger.info("github event ignored", extra={"extra_fields": log_ctx})
        return Response(status_code=200, content="ignored")

    try:
        event = extract_event(x_github_event, payload_bytes)
    except InvalidPayloadError:
        logger.warning("invalid github event", extra={"extra_fields": log_ctx})
        return Response(status_code=400, content="invalid payload")

    logger.info(
        "github webhook received",
        extra={
            "extra_fields": {
                **log_ctx,
                "action": event.action,
                "repository": event.repository,
                "issue_number": event.issue.issue.number,
            }
        },
    )

    try:
        with txn() as cur:
            if x_github_delivery and not sync_repository.record_delivery(
                cur, delivery_id=x_github_delivery, event=x_github_event
            ):
                logger.info("duplicate github delivery ignored", extra={"extra_fields": log_ctx})
                return Response(status_code=200, content="duplicate")

            store_issue(cur, event.issue)

            if event.comment is not None:
                store_comment(cur, event.comment)

                if event.action == "created":
                    comment_id = event.comment.comment.id
                    if not _get_tasks_client().enqueue_nag_update(
                        comment_id, correlation_id=correlation_id
                    ):
                        # rolls back the delivery receipt so a redelivery can retry
                        raise RuntimeError(f"enqueue failed for comment_id={comment_id}")

    except Exception:
        logger.exception("github webhook processing failed", extra={"extra_fields": log_ctx})
        return Response(status_code=500, content="processing failed")

    return Response(status_code=200, content="ok")

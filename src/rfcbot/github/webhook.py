"""GitHub webhook signature validation and payload extraction.

Purpose:
- Validate X-Hub-Signature-256 (HMAC-SHA256 of the raw body).
- Extract the issue/comment data the ingest layer stores.
- Never log payloads or signatures.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import Any

from rfcbot.github.models import (
    InvalidPayloadError,
    ParsedComment,
    ParsedIssue,
    parse_comment,
    parse_issue,
)


class SignatureVerificationError(Exception):
    """Webhook signature is missing or does not match."""


@dataclass(frozen=True)
class GitHubWebhookEvent:
    """Minimal data extracted from an issues / issue_comment delivery."""

    event: str
    action: str
    repository: str
    issue: ParsedIssue
    comment: ParsedComment | None = None


def verify_signature(payload_bytes: bytes, signature_header: str | None, secret: str) -> None:
    """Verify GitHub's sha256=<hex> HMAC signature.

    Args:
        payload_bytes: Raw request body bytes.
        signature_header: X-Hub-Signature-256 header value.
        secret: Webhook secret configured on GitHub.

    Raises:
        SignatureVerificationError: If missing, malformed or mismatched.
    """
    if not signature_header:
        raise SignatureVerificationError("missing signature header")

    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    expected_sig = signature_header[len("sha256="):]
    computed_sig = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload_bytes,
        digestmod=hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(computed_sig, expected_sig):
        raise SignatureVerificationError("signature mismatch")


def sign(payload_bytes: bytes, secret: str) -> str:
    """Header value GitHub would send for this body (used by tests and tooling)."""
    digest = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def extract_event(event: str, payload_bytes: bytes) -> GitHubWebhookEvent:
    """Parse an `issues` or `issue_comment` delivery.

    Raises:
        InvalidPayloadError: If the body is not JSON or lacks required fields.
    """
    try:
        payload: dict[str, Any] = json.loads(payload_bytes)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidPayloadError("body is not valid json") from e

    if not isinstance(payload, dict):
        raise InvalidPayloadError("body is not a json object")

    repository_data = payload.get("repository")
    repository = repository_data.get("full_name") if isinstance(repository_data, dict) else None
    issue_data = payload.get("issue")
    if not isinstance(repository, str) or not repository or not isinstance(issue_data, dict):
        raise InvalidPayloadError("missing repository or issue")

    parsed_issue = parse_issue(issue_data, repository)

    parsed_comment = None
    if event == "issue_comment":
        comment_data = payload.get("comment")
        if not isinstance(comment_data, dict):
            raise InvalidPayloadError("missing comment")
        parsed_comment = parse_comment(comment_data, repository, parsed_issue.issue.id)

    return GitHubWebhookEvent(
        event=event,
        action=str(payload.get("action") or ""),
        repository=repository,
        issue=parsed_issue,
        comment=parsed_comment,
    )

"""Authentication for worker task endpoints.

Two callers reach the worker: Cloud Tasks (nag updates enqueued by the
webhook receiver) and Cloud Scheduler (periodic nag evaluation and GitHub
scrapes). Both send a Google-signed OIDC token for TASKS_OIDC_AUDIENCE.
TASKS_OIDC_SERVICE_ACCOUNT may list several comma-separated accounts,
since the two callers usually run as different service accounts.

In local dev (TASKS_OIDC_AUDIENCE == "rfcbot-tasks-local") the
X-Internal-Task-Secret header is accepted instead.
"""

from __future__ import annotations

import hmac
import os

from fastapi import HTTPException, Request
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

logger = get_logger(__name__)

LOCAL_DEV_AUDIENCE = "rfcbot-tasks-local"

INTERNAL_SECRET_HEADER = "X-Internal-Task-Secret"


def allowed_service_accounts() -> frozenset[str]:
    raw = os.environ.get("TASKS_OIDC_SERVICE_ACCOUNT", "")
    return frozenset(email.strip() for email in raw.split(",") if email.strip())


def extract_bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def verify_task_oidc(token: str) -> bool:
    """Check signature, audience and (when configured) the signing account.

    Fails closed when TASKS_OIDC_AUDIENCE is not set.
    """
    if not token:
        return False

    audience = os.environ.get("TASKS_OIDC_AUDIENCE")
    if not audience:
        logger.error("TASKS_OIDC_AUDIENCE not configured - fail closed")
        return False

    try:
        claims = id_token.verify_oauth2_token(token, google_requests.Request(), audience=audience)
    except ValueError as e:
        logger.warning(
            "OIDC token verification failed",
            extra={"extra_fields": safe_log_context(error=str(e), expected_audience=audience)},
        )
        return False

    allowed = allowed_service_accounts()
    if allowed and claims.get("email", "") not in allowed:
        logger.warning(
            "OIDC token from unexpected service account",
            extra={"extra_fields": safe_log_context(email=claims.get("email", ""))},
        )
        return False

    return True


def _local_secret_matches(request: Request) -> bool:
    if os.environ.get("TASKS_OIDC_AUDIENCE", "") != LOCAL_DEV_AUDIENCE:
        return False
    expected = os.environ.get("INTERNAL_TASK_SECRET", "")
    received = request.headers.get(INTERNAL_SECRET_HEADER, "")
    return bool(expected) and hmac.compare_digest(received.encode(), expected.encode())


def verify_task_auth(request: Request) -> bool:
    if _local_secret_matches(request):
        return True

    token = extract_bearer_token(request)
    if token is None:
        logger.warning(
            "task auth failed: missing Bearer token",
            extra={"extra_fields": safe_log_context(path=request.url.path)},
        )
        return False
    return verify_task_oidc(token)


def require_task_auth(request: Request) -> None:
    """Router dependency: 401 unless verify_task_auth accepts the request."""
    if not verify_task_auth(request):
        raise HTTPException(status_code=401, detail="Unauthorized")

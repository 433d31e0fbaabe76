"""Runtime configuration read from the environment.

Values are read at call time so tests can monkeypatch os.environ.

Env vars:
- GITHUB_ACCESS_TOKEN (required for API calls)
- GITHUB_USER_AGENT (default: rfcbot)
- GITHUB_WEBHOOK_SECRET (required by the webhook endpoint)
- GH_ORGS: comma-separated orgs to scrape (default: rust-lang orgs)
- POST_COMMENTS: "true"/"1"/"yes" enables writes to GitHub
"""

import os

RFC_BOT_MENTION = "@rfcbot"

DEFAULT_GH_ORGS = ("rust-lang", "rust-lang-nursery", "rust-lang-deprecated")

DEFAULT_USER_AGENT = "rfcbot"

# Days between an FCP starting and being marked complete
FCP_LENGTH_DAYS = 10

FCP_LABEL = "final-comment-period"

_TRUTHY = {"1", "true", "yes", "on"}


def github_access_token() -> str:
    """Return the GitHub API token.

    Raises:
        RuntimeError: If GITHUB_ACCESS_TOKEN is not set.
    """
    token = os.environ.get("GITHUB_ACCESS_TOKEN", "")
    if not token:
        raise RuntimeError("GITHUB_ACCESS_TOKEN not configured")
    return token


def github_user_agent() -> str:
    return os.environ.get("GITHUB_USER_AGENT") or DEFAULT_USER_AGENT


def github_webhook_secret() -> str:
    """Return the webhook HMAC secret.

    Raises:
        RuntimeError: If GITHUB_WEBHOOK_SECRET is not set.
    """
    secret = os.environ.get("GITHUB_WEBHOOK_SECRET", "")
    if not secret:
        raise RuntimeError("GITHUB_WEBHOOK_SECRET not configured")
    return secret


def gh_orgs() -> tuple[str, ...]:
    raw = os.environ.get("GH_ORGS", "")
    orgs = tuple(org.strip() for org in raw.split(",") if org.strip())
    return orgs or DEFAULT_GH_ORGS


def post_comments() -> bool:
    """Whether the bot may write to GitHub (comments and labels)."""
    return os.environ.get("POST_COMMENTS", "").strip().lower() in _TRUTHY


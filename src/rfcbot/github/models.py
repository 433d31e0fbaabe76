"""GitHub API payload parsing.

Converts the JSON shapes returned by the REST API (and embedded in webhook
payloads) into the row models stored by the repositories. Only the fields
the schema keeps are read; anything missing raises InvalidPayloadError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from rfcbot.domain.models import GitHubUser, Issue, IssueComment
from rfcbot.infra.time import parse_github_timestamp


class InvalidPayloadError(ValueError):
    """GitHub JSON is missing fields the schema requires."""


@dataclass(frozen=True)
class ParsedIssue:
    issue: Issue
    author: GitHubUser


@dataclass(frozen=True)
class ParsedComment:
    """A comment with the issue number it belongs to.

    `comment.fk_issue` is 0 until the issue id is resolved; webhooks carry the
    issue, the comments-since API only carries its URL.
    """

    comment: IssueComment
    author: GitHubUser
    issue_number: int


def _require(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None:
        raise InvalidPayloadError(f"missing field: {key}")
    return value


def _require_object(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = _require(data, key)
    if not isinstance(value, dict):
        raise InvalidPayloadError(f"field is not an object: {key}")
    return value


def _require_int(data: dict[str, Any], key: str) -> int:
    value = _require(data, key)
    # int(True) == 1
    if isinstance(value, bool):
        raise InvalidPayloadError(f"field is not an integer: {key}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidPayloadError(f"field is not an integer: {key}") from e


def _timestamp(data: dict[str, Any], key: str, required: bool = False) -> datetime | None:
    value = _require(data, key) if required else data.get(key)
    try:
        return parse_github_timestamp(value)
    except (TypeError, ValueError) as e:
        raise InvalidPayloadError(f"bad timestamp: {key}") from e


def _label_names(data: dict[str, Any]) -> tuple[str, ...]:
    labels = data.get("labels") or ()
    if not isinstance(labels, list):
        raise InvalidPayloadError("labels is not a list")
    names = []
    for label in labels:
        if not isinstance(label, dict):
            raise InvalidPayloadError("label is not an object")
        if label.get("name"):
            names.append(str(label["name"]))
    return tuple(names)


def parse_user(data: dict[str, Any]) -> GitHubUser:
    return GitHubUser(id=_require_int(data, "id"), login=str(_require(data, "login")))


def repository_from_url(url: str) -> str:
    """Extract "owner/name" from an api.github.com repos/... URL."""
    marker = "/repos/"
    idx = url.find(marker)
    if idx < 0:
        raise InvalidPayloadError("url does not reference a repository")
    parts = url[idx + len(marker):].split("/")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise InvalidPayloadError("url does not reference a repository")
    return f"{parts[0]}/{parts[1]}"


def _issue_number_from_url(url: str) -> int:
    tail = url.rstrip("/").rsplit("/", 1)[-1]
    try:
        return int(tail)
    except ValueError as e:
        raise InvalidPayloadError("issue_url does not end in an issue number") from e


def parse_issue(data: dict[str, Any], repository: str | None = None) -> ParsedIssue:
    """Parse an issue (or pull request listed as an issue).

    Args:
        data: Issue JSON.
        repository: "owner/name"; derived from `repository_url` when omitted.
    """
    author = parse_user(_require_object(data, "user"))
    repo = repository or repository_from_url(str(_require(data, "repository_url")))
    created_at = _timestamp(data, "created_at", required=True)
    updated_at = _timestamp(data, "updated_at") or created_at

    issue = Issue(
        id=_require_int(data, "id"),
        number=_require_int(data, "number"),
        fk_user=author.id,
        open=_require(data, "state") == "open",
        is_pull_request="pull_request" in data,
        title=str(data.get("title") or ""),
        body=str(data.get("body") or ""),
        locked=bool(data.get("locked", False)),
        closed_at=_timestamp(data, "closed_at"),
        created_at=created_at,
        updated_at=updated_at,
        labels=_label_names(data),
        repository=repo,
    )
    return ParsedIssue(issue=issue, author=author)


def parse_comment(
    data: dict[str, Any],
    repository: str | None = None,
    issue_id: int = 0,
) -> ParsedComment:
    """Parse an issue comment.

    Args:
        data: Comment JSON.
        repository: "owner/name"; derived from `issue_url` when omitted.
        issue_id: Resolved issue id, when the caller already knows it.
    """
    author = parse_user(_require_object(data, "user"))
    issue_url = str(_require(data, "issue_url"))
    repo = repository or repository_from_url(issue_url)
    created_at = _timestamp(data, "created_at", required=True)
    updated_at = _timestamp(data, "updated_at") or created_at

    comment = IssueComment(
        id=_require_int(data, "id"),
        fk_issue=issue_id,
        fk_user=author.id,
        body=str(data.get("body") or ""),
        created_at=created_at,
        updated_at=updated_at,
        repository=repo,
    )
    return ParsedComment(
        comment=comment,
        author=author,
        issue_number=_issue_number_from_url(issue_url),
    )

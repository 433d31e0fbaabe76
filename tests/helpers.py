"""Shared test helper functions for rfcbot tests.

This module contains builders that can be imported by individual test
files. These are NOT fixtures - they are regular functions.
"""

from __future__ import annotations

from datetime import datetime

from rfcbot.domain.models import (
    FcpConcern,
    FcpDisposition,
    FcpProposal,
    FcpReviewRequest,
    GitHubUser,
    Issue,
    IssueComment,
)

CREATED = datetime(2018, 6, 20, 6, 28, 54)


def make_user(user_id: int = 1, login: str = "alice") -> GitHubUser:
    return GitHubUser(id=user_id, login=login)


def make_issue(
    issue_id: int = 100,
    number: int = 42,
    *,
    open: bool = True,
    labels: tuple[str, ...] = ("T-lang",),
    repository: str = "rust-lang/rfcs",
    fk_user: int = 1,
) -> Issue:
    return Issue(
        id=issue_id,
        number=number,
        fk_user=fk_user,
        open=open,
        is_pull_request=False,
        title="Add a feature",
        body="",
        locked=False,
        closed_at=None,
        created_at=CREATED,
        updated_at=CREATED,
        labels=labels,
        repository=repository,
    )


def make_comment(
    comment_id: int = 1000,
    body: str = "",
    *,
    fk_user: int = 1,
    fk_issue: int = 100,
    repository: str = "rust-lang/rfcs",
) -> IssueComment:
    return IssueComment(
        id=comment_id,
        fk_issue=fk_issue,
        fk_user=fk_user,
        body=body,
        created_at=CREATED,
        updated_at=CREATED,
        repository=repository,
    )


def make_proposal(
    proposal_id: int = 7,
    *,
    fk_issue: int = 100,
    fk_initiator: int = 1,
    tracking_comment: int = 2000,
    disposition: FcpDisposition = FcpDisposition.MERGE,
    fcp_start: datetime | None = None,
    fcp_closed: bool = False,
) -> FcpProposal:
    return FcpProposal(
        id=proposal_id,
        fk_issue=fk_issue,
        fk_initiator=fk_initiator,
        fk_initiating_comment=1000,
        disposition=disposition,
        fk_bot_tracking_comment=tracking_comment,
        fcp_start=fcp_start,
        fcp_closed=fcp_closed,
    )


def make_review(reviewer_id: int, reviewed: bool, proposal_id: int = 7) -> FcpReviewRequest:
    return FcpReviewRequest(
        id=reviewer_id, fk_proposal=proposal_id, fk_reviewer=reviewer_id, reviewed=reviewed
    )


def make_concern(
    name: str,
    *,
    concern_id: int = 1,
    resolved_by: int | None = None,
    initiating_comment: int = 1001,
    proposal_id: int = 7,
) -> FcpConcern:
    return FcpConcern(
        id=concern_id,
        fk_proposal=proposal_id,
        fk_initiator=1,
        fk_resolved_comment=resolved_by,
        name=name,
        fk_initiating_comment=initiating_comment,
    )


def user_json(user_id: int = 1, login: str = "alice") -> dict:
    return {"id": user_id, "login": login, "type": "User"}


def issue_json(
    issue_id: int = 100,
    number: int = 42,
    *,
    state: str = "open",
    labels: tuple[str, ...] = ("T-lang",),
    pull_request: bool = False,
    repository: str = "rust-lang/rfcs",
    user: dict | None = None,
) -> dict:
    data = {
        "id": issue_id,
        "number": number,
        "title": "Add a feature",
        "body": "Motivation...",
        "state": state,
        "locked": False,
        "user": user or user_json(),
        "labels": [{"name": label} for label in labels],
        "closed_at": None,
        "created_at": "2018-06-20T06:28:54Z",
        "updated_at": "2018-06-21T10:00:00Z",
        "repository_url": f"https://api.github.com/repos/{repository}",
    }
    if pull_request:
        data["pull_request"] = {"url": f"https://api.github.com/repos/{repository}/pulls/{number}"}
    return data


def comment_json(
    comment_id: int = 1000,
    body: str = "@rfcbot fcp merge",
    *,
    issue_number: int = 42,
    repository: str = "rust-lang/rfcs",
    user: dict | None = None,
) -> dict:
    return {
        "id": comment_id,
        "body": body,
        "user": user or user_json(),
        "created_at": "2018-06-20T07:00:00Z",
        "updated_at": "2018-06-20T07:00:00Z",
        "issue_url": f"https://api.github.com/repos/{repository}/issues/{issue_number}",
    }

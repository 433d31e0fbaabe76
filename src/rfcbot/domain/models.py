"""Row models for the rfcbot schema.

Plain frozen dataclasses built by the repositories from cursor rows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class GitHubUser:
    id: int
    login: str


@dataclass(frozen=True)
class Team:
    id: int
    name: str
    ping: str
    label: str


@dataclass(frozen=True)
class Membership:
    fk_member: int
    fk_team: int


@dataclass(frozen=True)
class Issue:
    id: int
    number: int
    fk_user: int
    open: bool
    is_pull_request: bool
    title: str
    body: str
    locked: bool
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    labels: tuple[str, ...]
    repository: str


@dataclass(frozen=True)
class IssueComment:
    id: int
    fk_issue: int
    fk_user: int
    body: str
    created_at: datetime
    updated_at: datetime
    repository: str


class FcpDisposition(str, Enum):
    """What an FCP proposes to do with the issue."""

    MERGE = "merge"
    CLOSE = "close"
    POSTPONE = "postpone"


@dataclass(frozen=True)
class FcpProposal:
    id: int
    fk_issue: int
    fk_initiator: int
    fk_initiating_comment: int
    disposition: FcpDisposition
    fk_bot_tracking_comment: int
    fcp_start: datetime | None
    fcp_closed: bool


@dataclass(frozen=True)
class FcpReviewRequest:
    id: int
    fk_proposal: int
    fk_reviewer: int
    reviewed: bool


@dataclass(frozen=True)
class FcpConcern:
    id: int
    fk_proposal: int
    fk_initiator: int
    fk_resolved_comment: int | None
    name: str
    fk_initiating_comment: int


@dataclass(frozen=True)
class FeedbackRequest:
    id: int
    fk_initiator: int
    fk_requested: int
    fk_feedback_comment: int | None
    fk_issue: int


@dataclass(frozen=True)
class Poll:
    """A question raised against one tracked issue.

    At most one poll exists per issue; `teams` are the team labels targeted.
    """

    id: int
    fk_issue: int
    fk_initiator: int
    fk_initiating_comment: int
    fk_bot_tracking_comment: int
    poll_question: str
    poll_created_at: datetime
    poll_closed: bool
    teams: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PollResponseRequest:
    id: int
    fk_poll: int
    fk_respondent: int
    responded: bool

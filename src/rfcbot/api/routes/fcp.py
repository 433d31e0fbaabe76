"""FCP dashboard endpoints.

GET /fcp/all          → proposals on open issues with reviews and concerns
GET /fcp/{username}   → a reviewer's pending reviews and feedback requests
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Path

from rfcbot.domain.models import FcpProposal
from rfcbot.infra.db import txn
from rfcbot.infra.repositories import fcp_repository, users_repository

router = APIRouter(prefix="/fcp", tags=["fcp"])


# ── Helper ────────────────────────────────────────────────────────────────────


def _issue_to_dict(number: int, repository: str, title: str) -> dict:
    return {
        "number": number,
        "repository": repository,
        "title": title,
        "url": f"https://github.com/{repository}/issues/{number}",
    }


def _proposal_to_dict(proposal: FcpProposal) -> dict:
    return {
        "id": proposal.id,
        "fk_issue": proposal.fk_issue,
        "fk_initiator": proposal.fk_initiator,
        "fk_initiating_comment": proposal.fk_initiating_comment,
        "disposition": proposal.disposition.value,
        "fk_bot_tracking_comment": proposal.fk_bot_tracking_comment,
        "fcp_start": proposal.fcp_start.isoformat() if proposal.fcp_start else None,
        "fcp_closed": proposal.fcp_closed,
    }


# ── Endpoints ─────────────────────────────────────────────────────────────────


@router.get("/all")
def list_fcps() -> list[dict]:
    with txn() as cur:
        result = []
        for proposal, number, repository, title in fcp_repository.list_open_issue_proposals(cur):
            reviews = fcp_repository.list_review_requests(cur, proposal.id)
            concerns = fcp_repository.list_concerns_with_authors(cur, proposal.id)
            result.append({
                "fcp": _proposal_to_dict(proposal),
                "issue": _issue_to_dict(number, repository, title),
                "reviews": [
                    {"reviewer": user.login, "reviewed": review.reviewed}
                    for user, review in reviews
                ],
                "concerns": [
                    {
                        "name": concern.name,
                        "initiator": user.login,
                        "resolved": concern.fk_resolved_comment is not None,
                    }
                    for user, concern in concerns
                ],
            })
    return result


@router.get("/{username}")
def member_nags(username: str = Path(..., min_length=1)) -> dict:
    """Outstanding work for one user. 404 if the login is not mirrored."""
    with txn() as cur:
        user = users_repository.get_user_by_login(cur, username)
        if user is None:
            raise HTTPException(status_code=404, detail="user not found")

        pending = fcp_repository.list_pending_reviews_for_user(cur, user.id)
        feedback = fcp_repository.list_open_feedback_requests_for_user(cur, user.id)

    return {
        "user": {"id": user.id, "login": user.login},
        "pending_reviews": [
            {
                "fcp": _proposal_to_dict(proposal),
                "issue": _issue_to_dict(number, repository, title),
            }
            for proposal, number, repository, title in pending
        ],
        "feedback_requests": [
            {
                "id": request.id,
                "fk_initiator": request.fk_initiator,
                "issue": _issue_to_dict(number, repository, title),
            }
            for request, number, repository, title in feedback
        ],
    }

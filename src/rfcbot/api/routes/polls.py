"""Read-only poll listing.

GET /polls → open polls with the respondents who have not answered yet
"""

from __future__ import annotations

from fastapi import APIRouter

from rfcbot.infra.db import txn
from rfcbot.infra.repositories import issues_repository, polls_repository

router = APIRouter(prefix="/polls", tags=["polls"])


@router.get("")
def list_polls() -> list[dict]:
    with txn() as cur:
        result = []
        for poll in polls_repository.list_open_polls(cur):
            issue = issues_repository.get_issue(cur, poll.fk_issue)
            requests = polls_repository.list_response_requests(cur, poll.id)
            result.append({
                "id": poll.id,
                "question": poll.poll_question,
                "created_at": poll.poll_created_at.isoformat(),
                "teams": list(poll.teams),
                "issue": {
                    "number": issue.number,
                    "repository": issue.repository,
                    "title": issue.title,
                } if issue else None,
                "pending_respondents": [
                    user.login for user, request in requests if not request.responded
                ],
                "responded": sum(1 for _, request in requests if request.responded),
            })
    return result

"""Routes served by every role: health, the GitHub webhook and read-only listings."""

from fastapi import APIRouter

from rfcbot.api.routes import fcp, polls, webhooks_github

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


router.include_router(webhooks_github.router)
router.include_router(fcp.router)
router.include_router(polls.router)

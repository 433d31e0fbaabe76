"""Task endpoints for APP_ROLE=worker (nag updates, nag evaluation, GitHub scrape)."""

import os

from fastapi import APIRouter

from rfcbot.api.routes import tasks_github, tasks_nags

router = APIRouter()


@router.get("/tasks/health")
def tasks_health() -> dict:
    return {
        "status": "ok",
        "subsystem": "tasks",
        "backend": os.environ.get("TASKS_BACKEND", "inline"),
    }


@router.get("/internal/health")
def internal_health() -> dict:
    return {"status": "ok", "subsystem": "internal"}


router.include_router(tasks_nags.router)
router.include_router(tasks_github.router)

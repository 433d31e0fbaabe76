"""Worker routes for the FCP nag workflow."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from rfcbot.api.task_auth import require_task_auth
from rfcbot.domain import nag
from rfcbot.observability.logging import get_logger
from rfcbot.observability.redaction import safe_log_context

router = APIRouter(
    prefix="/tasks/nags", tags=["tasks"], dependencies=[Depends(require_task_auth)]
)

logger = get_logger(__name__)


class NagUpdateTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    task_id: str
    comment_id: int


@router.post("/update")
async def handle_update(request: Request) -> JSONResponse:
    """Process a newly created comment, then evaluate all proposals.

    Expected payload:
    - task_id: Task identifier (required)
    - comment_id: GitHub comment id (required)
    """
    try:
        payload: dict[str, Any] = await request.json()
        task = NagUpdateTask.model_validate(payload)
    except (ValueError, ValidationError):
        logger.warning("invalid nag update payload")
        return JSONResponse(status_code=400, content={"ok": False, "error": "invalid payload"})

    log_ctx = safe_log_context(task_id=task.task_id, comment_id=task.comment_id)
    logger.info("nag update task received", extra={"extra_fields": log_ctx})

    try:
        result = nag.update_nags(task.comment_id)
    except Exception:
        logger.exception("nag update task failed", extra={"extra_fields": log_ctx})
        return JSONResponse(status_code=500, content={"ok": False, "error": "processing failed"})

    return JSONResponse(status_code=200, content={"ok": True, **result})


@router.post("/evaluate")
async def handle_evaluate() -> JSONResponse:
    """Evaluate all outstanding proposals (scheduled by a cron trigger)."""
    try:
        counts = nag.evaluate_nags()
    except Exception:
        logger.exception("nag evaluation task failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "processing failed"})

    return JSONResponse(status_code=200, content={"ok": True, **counts})

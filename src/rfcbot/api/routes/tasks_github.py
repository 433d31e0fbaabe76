"""Worker route for the periodic GitHub scrape."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from rfcbot import scraper
from rfcbot.api.task_auth import require_task_auth
from rfcbot.observability.logging import get_logger

router = APIRouter(
    prefix="/tasks/github", tags=["tasks"], dependencies=[Depends(require_task_auth)]
)

logger = get_logger(__name__)


@router.post("/scrape")
async def handle_scrape() -> JSONResponse:
    """Scrape everything updated since the last successful sync.

    Returns 200 with "failed" status when repositories could not be listed
    (the failure is already recorded); 500 only on unexpected errors.
    """
    try:
        since = scraper.most_recent_update()
        result = scraper.scrape_github(since)
    except Exception:
        logger.exception("github scrape task failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "processing failed"})

    return JSONResponse(
        status_code=200,
        content={"ok": result["status"] == "ok", "since": since.isoformat(), **result},
    )

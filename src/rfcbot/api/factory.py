"""FastAPI application factory.

One codebase serves two deployments: the public receiver (GitHub webhook and
read-only listings) and the worker, which additionally mounts the task
endpoints that post to GitHub.
"""

import os
from typing import Literal, get_args

from fastapi import APIRouter, FastAPI, Request, Response

from rfcbot.observability.correlation import (
    CORRELATION_ID_HEADER,
    correlation_id_from_headers,
    correlation_scope,
)

from .routers import public, worker

AppRole = Literal["public", "worker"]

ROLE_ROUTERS: dict[str, tuple[APIRouter, ...]] = {
    "public": (public.router,),
    "worker": (public.router, worker.router),
}


def create_app(role: AppRole | None = None) -> FastAPI:
    """Build the app for a role (APP_ROLE when not given, default public).

    Raises:
        ValueError: For a role other than public/worker.
    """
    if role is None:
        role = os.environ.get("APP_ROLE") or "public"  # type: ignore[assignment]
    if role not in get_args(AppRole):
        raise ValueError(f"unknown APP_ROLE: {role!r}")

    app = FastAPI(title=f"rfcbot ({role})", docs_url=None, redoc_url=None)

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        with correlation_scope(correlation_id_from_headers(request.headers)) as cid:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response

    for router in ROLE_ROUTERS[role]:
        app.include_router(router)

    return app

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

import sentry_sdk
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from starlette.exceptions import HTTPException

from broadcast_task_scheduler import db, dispatcher, scheduler
from broadcast_task_scheduler.api import dispatch, tasks
from broadcast_task_scheduler.config import Settings, get_settings
from broadcast_task_scheduler.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def init_error_reporting(settings: Settings) -> bool:
    """Start Sentry when a DSN is configured; return whether it was started."""
    if not settings.sentry_dsn:
        return False
    sentry_sdk.init(dsn=settings.sentry_dsn, integrations=[FastApiIntegration()])
    return True


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """App lifespan: logging, DB, periodic dispatch; ensure clean shutdown."""
    settings = get_settings()
    setup_logging(
        settings.log_level,
        logflare_api_key=settings.logflare_api_key,
        logflare_source=settings.logflare_source,
    )
    init_error_reporting(settings)
    db.init_db()
    scheduler.start()
    scheduler.schedule_dispatch(
        dispatcher.run_dispatch_cycle, settings.dispatch_interval_seconds
    )
    logger.info(
        "Started; dispatch interval=%ss, endpoint=%s, jobs=%s",
        settings.dispatch_interval_seconds,
        settings.invoke_url,
        scheduler.get_job_ids(),
    )
    try:
        yield
    finally:
        scheduler.shutdown()


app = FastAPI(title="Broadcast Task Scheduler", lifespan=lifespan)
app.include_router(tasks.router)
app.include_router(dispatch.router)


@app.middleware("http")
async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log each request on arrival and again with its status."""
    incoming = f"{request.method} {request.url.path}"
    logger.info(incoming)
    response = await call_next(request)
    logger.info("%s %s", incoming, response.status_code)
    return response


@app.exception_handler(HTTPException)
async def http_error(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first invalid field as ``{"message": "<field> is invalid"}``."""
    errors = exc.errors()
    loc = errors[0]["loc"] if errors else ("body",)
    # loc is ("body", "<field>", ...) for body fields, ("body", <pos>) for bad JSON
    field = loc[1] if len(loc) > 1 and isinstance(loc[1], str) else loc[0]
    return JSONResponse(status_code=400, content={"message": f"{field} is invalid"})


@app.exception_handler(Exception)
async def unhandled_error(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"message": "error"})

"""
api/main.py -- FastAPI application entry point for ShopGate.

Install deps:  pip install -e .
Run with:      python main.py serve
               uvicorn asgi:app --reload

Lifespan handles startup (user store, session store, auth flow, purge task)
and shutdown (cancel purge task, dispose DB engines) symmetrically. Every
collaborator lives on app.state; route handlers reach them through the
request, never through module globals.

Error surface:
  /api/*  -- JSON envelope (ErrorResponse) for every error.
  other   -- plain text. 404 reads "Page not found", 500 reads "Server error".
  Internal detail is written to the log only, never to a response body.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse
from api.routes.v1.auth import router as auth_router
from auth.flow import AuthFlow
from auth.store import UserStore
from core.config import get_settings
from sessions.store import build_session_store

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("shopgate.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: float) -> None:
    """Drop expired sessions every `interval` seconds.

    The purge runs in a worker thread because the database backing blocks.
    A store error is logged and the next tick tries again. CancelledError
    from task.cancel() during shutdown propagates out of asyncio.sleep and
    unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await asyncio.to_thread(app.state.session_store.purge_expired)
        except SQLAlchemyError:
            logger.exception("Session purge failed, retrying in %ss", interval)
            continue
        if removed:
            logger.info("Purged %d expired sessions", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the stores on startup and release them on shutdown.

    The purge task starts last because it references app.state.session_store.
    """
    settings = get_settings()
    logger.info("ShopGate starting up")
    app.state.user_store = UserStore(settings.resolved_database_url, ssl_ca=settings.db_ssl_ca)
    app.state.session_store = build_session_store(settings)
    app.state.auth_flow = AuthFlow(app.state.user_store, app.state.session_store)
    logger.info("Stores initialized (session_backend=%s)", settings.session_backend)
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))

    yield

    app.state.purge_task.cancel()
    app.state.session_store.close()
    app.state.user_store.close()
    logger.info("ShopGate shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ShopGate",
    description="Registration, login and a session-gated shopping page.",
    version="0.4.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api/")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    if not _is_api(request):
        return PlainTextResponse("Bad request", status_code=400)
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render HTTP errors as JSON under /api/ and as plain text elsewhere.

    When detail is already a structured dict (raised by auth dependencies),
    use it directly as the error field.
    """
    if not _is_api(request):
        text = "Page not found" if exc.status_code == 404 else str(exc.detail)
        return PlainTextResponse(text, status_code=exc.status_code, headers=exc.headers)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unexpected server errors.

    The raw exception goes to the log only. Clients receive a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    if not _is_api(request):
        return PlainTextResponse("Server error", status_code=500)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="An unexpected error occurred."),
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/health", response_class=PlainTextResponse, tags=["Health"])
async def health() -> PlainTextResponse:
    """Liveness probe."""
    return PlainTextResponse("OK")

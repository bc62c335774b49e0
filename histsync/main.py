"""histsync API: FastAPI application entry point.

Run locally:
    uvicorn histsync.main:app --reload --port 8888
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from histsync.config import Settings, get_settings
from histsync.middleware.token_auth import SessionPrincipalResolver, TokenAuthMiddleware
from histsync.models.base import ErrorResponse
from histsync.routers import account, history, status, store, sync
from histsync.services.database import Database
from histsync.services.schema import create_schema
from histsync.sync.errors import SyncError
from histsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger("histsync")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting histsync v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    db = await Database.connect(settings)
    try:
        if settings.create_schema:
            await create_schema(db)
        app.state.db = db
        app.state.sync = SyncOrchestrator.from_database(db, settings)
        app.state.principal_resolver = SessionPrincipalResolver(db)
        yield
    finally:
        await db.close()
    logger.info("histsync shut down")


# ---------- Error handlers ----------

def _error(status_code: int, reason: str) -> JSONResponse:
    body = ErrorResponse(status=status_code, reason=reason)
    return JSONResponse(body.model_dump(), status_code=status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    reason = f"{location}: {first.get('msg', 'invalid request')}" if location else "invalid request"
    return _error(422, reason)


async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    return _error(400, str(exc))


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "internal server error")


# ---------- App factory ----------

def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="histsync",
        description="Sync server for end-to-end encrypted shell history.",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(TokenAuthMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SyncError, sync_error_handler)
    app.add_exception_handler(asyncpg.PostgresError, storage_error_handler)
    app.add_exception_handler(asyncpg.InterfaceError, storage_error_handler)
    app.add_exception_handler(OSError, storage_error_handler)

    app.include_router(status.router)
    app.include_router(store.router)
    app.include_router(history.router)
    app.include_router(sync.router)
    app.include_router(account.router)

    return app


app = create_app()

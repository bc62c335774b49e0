"""Server status and health check endpoints, public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

from histsync.dependencies import AppSettings, Sync
from histsync.models.history import ServerStatus

router = APIRouter(tags=["system"])
logger = logging.getLogger("histsync.health")


@router.get("/", response_model=ServerStatus)
async def server_status(sync: Sync, settings: AppSettings) -> Any:
    total_history, store_total = await sync.server_totals()
    return {
        "version": settings.api_version,
        "histsync_version": settings.app_version,
        "total_history": total_history,
        "store_total": store_total,
    }


@router.get("/health")
async def health_check(request: Request, settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also performs a lightweight DB connectivity check.
    """
    db_ok = False
    try:
        db = request.app.state.db
        await db.fetchval("SELECT 1")
        db_ok = True
    except Exception as exc:
        logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "healthy" if db_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if db_ok else "unreachable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

"""Legacy sync endpoints: count, incremental history, calendar and status."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Header, Query

from histsync.dependencies import CurrentUser, Sync
from histsync.models.history import (
    CountResponse,
    SyncHistoryResponse,
    SyncStatusResponse,
    TimePeriodInfo,
)
from histsync.sync.calendar_stats import CalendarFocus

router = APIRouter(prefix="/sync", tags=["sync"])
logger = logging.getLogger("histsync.routers.sync")


@router.get("/count", response_model=CountResponse)
async def get_count(user: CurrentUser, sync: Sync) -> Any:
    return {"count": await sync.get_count(user.user_id)}


@router.get("/history", response_model=SyncHistoryResponse)
async def get_history(
    user: CurrentUser,
    sync: Sync,
    sync_ts: datetime = Query(),
    history_ts: datetime = Query(),
    host: str = Query(),
) -> Any:
    history = await sync.get_history(user.user_id, sync_ts, history_ts, host)
    return {"history": history}


@router.get("/calendar/{focus}", response_model=dict[str, TimePeriodInfo])
async def calendar(
    focus: CalendarFocus,
    user: CurrentUser,
    sync: Sync,
    year: int | None = Query(default=None),
    month: int | None = Query(default=None),
    tz: str | None = Query(default=None),
) -> Any:
    stats = await sync.get_history_stats(user.user_id, focus, year=year, month=month, tz=tz)
    return {str(unit): {"count": count} for unit, count in stats.items()}


@router.get("/status", response_model=SyncStatusResponse)
async def status(
    user: CurrentUser,
    sync: Sync,
    atuin_version: str | None = Header(default=None, alias="atuin-version"),
) -> Any:
    history = await sync.status_for_client(user.user_id, atuin_version)
    return {
        "count": history.count,
        "username": user.username,
        "deleted": history.deleted,
        "page_size": sync.page_size,
        "version": sync.api_version,
    }

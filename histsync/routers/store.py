"""Record store endpoints: push, pull, shard cursors and store wipe."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Response

from histsync.dependencies import CurrentUser, Sync
from histsync.models.store import CursorIndex, RecordWire

router = APIRouter(prefix="/api/v0", tags=["store"])


@router.get("/record", response_model=CursorIndex)
async def get_cursors(user: CurrentUser, sync: Sync) -> Any:
    return {"hosts": await sync.get_cursors(user.user_id)}


@router.post("/record")
async def add_records(user: CurrentUser, sync: Sync, body: list[RecordWire]) -> Response:
    await sync.push_records(user.user_id, [r.to_record() for r in body])
    return Response(status_code=200)


@router.get("/record/next", response_model=list[RecordWire])
async def next_records(
    user: CurrentUser,
    sync: Sync,
    host: str = Query(min_length=1),
    tag: str = Query(min_length=1),
    count: int | None = Query(default=None, ge=0),
    start: int = Query(default=0, ge=0),
) -> Any:
    records = await sync.pull_records(user.user_id, host, tag, count, start)
    return [RecordWire.from_record(r) for r in records]


@router.delete("/store")
async def delete_store(user: CurrentUser, sync: Sync) -> Response:
    await sync.wipe_store(user.user_id)
    return Response(status_code=200)

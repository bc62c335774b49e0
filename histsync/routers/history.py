"""Legacy history upload and tombstone endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response

from histsync.dependencies import CurrentUser, Sync
from histsync.models.history import AddHistoryRequest, DeleteHistoryRequest

router = APIRouter(prefix="/history", tags=["history"])


@router.post("")
async def add_history(user: CurrentUser, sync: Sync, body: list[AddHistoryRequest]) -> Response:
    await sync.add_history(user.user_id, [item.to_item() for item in body])
    return Response(status_code=200)


@router.delete("")
async def delete_history(user: CurrentUser, sync: Sync, body: DeleteHistoryRequest) -> Response:
    # repeat deletes are fine: the tombstone is already there
    await sync.delete_history(user.user_id, body.client_id)
    return Response(status_code=200)

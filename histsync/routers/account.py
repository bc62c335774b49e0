"""Full-account data wipe."""

from __future__ import annotations

from fastapi import APIRouter, Response

from histsync.dependencies import CurrentUser, Sync

router = APIRouter(prefix="/account", tags=["account"])


@router.delete("/data")
async def delete_account_data(user: CurrentUser, sync: Sync) -> Response:
    await sync.delete_account_data(user.user_id)
    return Response(status_code=200)

"""Per-shard high-watermark cache.

One row per shard ``(user_id, host, tag)`` holding the idx of the latest
record batch the server accepted for it.  Clients read the whole map to
decide what to push and what to pull without scanning the store table.

Under ``CursorPolicy.last_write`` the row takes whatever idx was written
last, so two concurrent pushes to one shard can leave it on the lower idx
until the next push.  ``CursorPolicy.max`` applies ``GREATEST`` inside the
same upsert and never moves a cursor backwards.
"""

from __future__ import annotations

import logging

from histsync.config import CursorPolicy
from histsync.services.database import Database, affected_rows

logger = logging.getLogger("histsync.sync.cursors")

_UPSERT_LAST_WRITE = """
    INSERT INTO store_idx_cache (user_id, host, tag, idx)
    VALUES ($1, $2, $3, $4)
    ON CONFLICT (user_id, host, tag) DO UPDATE SET idx = EXCLUDED.idx
"""

_UPSERT_MAX = """
    INSERT INTO store_idx_cache (user_id, host, tag, idx)
    VALUES ($1, $2, $3, $4)
    ON CONFLICT (user_id, host, tag) DO UPDATE
    SET idx = GREATEST(store_idx_cache.idx, EXCLUDED.idx)
"""

CursorMap = dict[str, dict[str, int]]


class ShardCursorCache:
    def __init__(self, db: Database, policy: CursorPolicy = CursorPolicy.last_write) -> None:
        self._db = db
        self.policy = policy

    async def upsert(self, user_id: int, host: str, tag: str, idx: int) -> None:
        query = _UPSERT_MAX if self.policy is CursorPolicy.max else _UPSERT_LAST_WRITE
        await self._db.execute(query, user_id, host, tag, idx)
        logger.debug("Cursor %s/%s for user %s set to %d", host, tag, user_id, idx)

    async def get(self, user_id: int) -> CursorMap:
        """Return ``{host: {tag: idx}}`` for every shard the user owns."""
        rows = await self._db.fetch(
            "SELECT host, tag, idx FROM store_idx_cache WHERE user_id = $1",
            user_id,
        )
        hosts: CursorMap = {}
        for row in rows:
            hosts.setdefault(row["host"], {})[row["tag"]] = row["idx"]
        return hosts

    async def get_total(self) -> int:
        """Sum of every cursor idx in the system.

        A sizing metric only: it adds indices, not rows, across all users.
        """
        total = await self._db.fetchval(
            "SELECT COALESCE(SUM(idx), 0) FROM store_idx_cache"
        )
        return int(total or 0)

    async def delete(self, user_id: int) -> int:
        status = await self._db.execute(
            "DELETE FROM store_idx_cache WHERE user_id = $1", user_id
        )
        return affected_rows(status)

"""Legacy history timeline with soft-delete tombstones.

Items are keyed by ``(user_id, client_id)``; adding an item a second time is
a no-op.  The only mutation afterwards is setting ``deleted_at``, which is
one-way: other devices learn about the deletion from ``get_status`` and stop
receiving the item from ``get_history``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence

from histsync.config import Settings
from histsync.services.database import Database, affected_rows
from histsync.sync.envelope import sanitize_payload
from histsync.sync.errors import InvalidTimestampError

logger = logging.getLogger("histsync.sync.history")

_INSERT_ITEM = """
    INSERT INTO history (client_id, user_id, hostname, timestamp, data)
    VALUES ($1, $2, $3, $4, $5)
    ON CONFLICT (user_id, client_id) DO NOTHING
"""


@dataclass(frozen=True)
class HistoryItem:
    client_id: str
    hostname: str
    timestamp: datetime
    data: str


@dataclass
class HistoryStatus:
    count: int
    deleted: list[str] = field(default_factory=list)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as exc:
        raise InvalidTimestampError(f"Timestamp out of range: {value.isoformat()}") from exc


class HistoryTimeline:
    def __init__(self, db: Database, settings: Settings) -> None:
        self._db = db
        self._page_size = settings.page_size
        self._max_data_size = settings.max_history_data_size

    async def add(self, user_id: int, items: Sequence[HistoryItem]) -> int:
        """Insert items that are not stored yet. Returns how many were sanitized.

        Payloads that are not a valid envelope, or exceed the size limit, are
        replaced by an empty envelope instead of failing the batch.
        """
        if not items:
            return 0
        rows = []
        sanitized = 0
        for item in items:
            data, replaced = sanitize_payload(item.data, self._max_data_size)
            if replaced:
                sanitized += 1
                logger.warning(
                    "Discarding invalid history payload %s from host %s (user %s)",
                    item.client_id, item.hostname, user_id,
                )
            rows.append((item.client_id, user_id, item.hostname, as_utc(item.timestamp), data))
        await self._db.executemany(_INSERT_ITEM, rows)
        logger.info(
            "Added %d history item(s) for user %s (%d sanitized)",
            len(items), user_id, sanitized,
        )
        return sanitized

    async def get_history(
        self,
        user_id: int,
        sync_ts: datetime,
        history_ts: datetime,
        exclude_host: str,
        page_size: int | None = None,
    ) -> list[str]:
        """Return payloads other hosts contributed since the caller last synced.

        ``sync_ts`` bounds the server insert time, ``history_ts`` the client
        timestamp.  Tombstoned items and items from ``exclude_host`` are left
        out.  Results are ordered by client timestamp.
        """
        limit = min(page_size or self._page_size, self._page_size)
        rows = await self._db.fetch(
            """
            SELECT data FROM history
            WHERE user_id = $1
              AND hostname != $2
              AND created_at >= $3
              AND timestamp >= $4
              AND deleted_at IS NULL
            ORDER BY timestamp ASC
            LIMIT $5
            """,
            user_id, exclude_host, as_utc(sync_ts), as_utc(history_ts), limit,
        )
        return [row["data"] for row in rows]

    async def delete(self, user_id: int, client_id: str) -> bool:
        """Tombstone one item. Returns False when nothing changed."""
        status = await self._db.execute(
            """
            UPDATE history SET deleted_at = NOW()
            WHERE user_id = $1 AND client_id = $2 AND deleted_at IS NULL
            """,
            user_id, client_id,
        )
        changed = affected_rows(status) > 0
        if changed:
            logger.info("Tombstoned history item %s for user %s", client_id, user_id)
        return changed

    async def get_count(self, user_id: int) -> int:
        count = await self._db.fetchval(
            "SELECT COUNT(*) FROM history WHERE user_id = $1 AND deleted_at IS NULL",
            user_id,
        )
        return int(count or 0)

    async def get_status(self, user_id: int) -> HistoryStatus:
        count = await self.get_count(user_id)
        rows = await self._db.fetch(
            """
            SELECT client_id FROM history
            WHERE user_id = $1 AND deleted_at IS NOT NULL
            ORDER BY deleted_at, id
            """,
            user_id,
        )
        return HistoryStatus(count=count, deleted=[row["client_id"] for row in rows])

    async def delete_all(self, user_id: int) -> int:
        """Physically remove the account's history, tombstones included."""
        status = await self._db.execute("DELETE FROM history WHERE user_id = $1", user_id)
        return affected_rows(status)

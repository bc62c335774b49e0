"""Append-only store of opaque records, partitioned into shards.

A shard is one ``(user_id, host, tag)`` sequence whose records carry a
client-assigned, strictly increasing ``idx``.  The ``(user_id, host, tag,
idx)`` unique constraint makes a push idempotent: re-sending a record that is
already stored is silently skipped.

A push is two independent statements: the batch insert, then the cursor
upsert.  If the process dies between them the cursor lags behind the store
until the next successful push to that shard moves it again.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Sequence

from histsync.config import Settings
from histsync.services.database import Database, affected_rows
from histsync.sync.cursor_cache import ShardCursorCache

logger = logging.getLogger("histsync.sync.store")

_INSERT_RECORD = """
    INSERT INTO store (id, client_id, user_id, host, tag, idx, timestamp, version, data, cek)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
    ON CONFLICT (user_id, host, tag, idx) DO NOTHING
"""


@dataclass(frozen=True)
class StoreRecord:
    """One opaque record as pushed by a client.

    Attributes:
        client_id: Client-chosen record id, returned verbatim on pull.
        host:      Host id of the shard.
        tag:       Tag of the shard (e.g. ``"history"``, ``"kv"``).
        idx:       Position of the record inside its shard.
        timestamp: Client timestamp, nanoseconds since the epoch.
        version:   Client record format version.
        data:      Ciphertext.
        cek:       Wrapped content encryption key.
    """

    client_id: str
    host: str
    tag: str
    idx: int
    timestamp: int
    version: str
    data: str
    cek: str


class RecordStore:
    def __init__(self, db: Database, cursors: ShardCursorCache, settings: Settings) -> None:
        self._db = db
        self._cursors = cursors
        self._page_size = settings.page_size

    async def add(self, user_id: int, records: Sequence[StoreRecord]) -> None:
        """Insert a batch, then move the cursor of the batch's last record.

        Clients send each shard as a contiguous run ordered by idx, so the
        last record carries the shard's new high-watermark.
        """
        if not records:
            return
        await self._db.executemany(
            _INSERT_RECORD,
            [
                (
                    uuid.uuid4(),
                    r.client_id,
                    user_id,
                    r.host,
                    r.tag,
                    r.idx,
                    r.timestamp,
                    r.version,
                    r.data,
                    r.cek,
                )
                for r in records
            ],
        )
        last = records[-1]
        await self._cursors.upsert(user_id, last.host, last.tag, last.idx)
        logger.info(
            "Stored %d record(s) for user %s, cursor %s/%s -> %d",
            len(records), user_id, last.host, last.tag, last.idx,
        )

    async def get_next_records(
        self, user_id: int, host: str, tag: str, count: int, start: int
    ) -> list[StoreRecord]:
        """Return up to ``count`` records of one shard with ``idx >= start``.

        ``count`` is capped at the configured page size.  An unknown or
        exhausted shard yields an empty list.
        """
        limit = min(count, self._page_size)
        if limit <= 0:
            return []
        rows = await self._db.fetch(
            """
            SELECT client_id, host, tag, idx, timestamp, version, data, cek
            FROM store
            WHERE user_id = $1 AND host = $2 AND tag = $3 AND idx >= $4
            ORDER BY idx ASC
            LIMIT $5
            """,
            user_id, host, tag, start, limit,
        )
        return [
            StoreRecord(
                client_id=row["client_id"],
                host=row["host"],
                tag=row["tag"],
                idx=row["idx"],
                timestamp=row["timestamp"],
                version=row["version"],
                data=row["data"],
                cek=row["cek"],
            )
            for row in rows
        ]

    async def delete_store(self, user_id: int) -> int:
        """Remove every record of the account. Returns the number of rows removed."""
        status = await self._db.execute("DELETE FROM store WHERE user_id = $1", user_id)
        removed = affected_rows(status)
        logger.info("Deleted %d store record(s) for user %s", removed, user_id)
        return removed

    async def row_count(self) -> int:
        """Planner estimate of the store table size, cheap enough for a status page."""
        estimate = await self._db.fetchval(
            "SELECT GREATEST(reltuples, 0)::bigint FROM pg_class WHERE relname = 'store'"
        )
        return int(estimate or 0)

"""Composition of the record store, cursor cache, history timeline and calendar.

The orchestrator holds no state of its own.  It applies the page-size ceiling
to every paginated read, gates the legacy status payload on the client
version, and otherwise lets component results and errors pass through
unchanged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from histsync.config import Settings
from histsync.services.database import Database
from histsync.sync.calendar_stats import CalendarAggregator, CalendarFocus
from histsync.sync.cursor_cache import CursorMap, ShardCursorCache
from histsync.sync.history import HistoryItem, HistoryStatus, HistoryTimeline
from histsync.sync.record_store import RecordStore, StoreRecord

logger = logging.getLogger("histsync.sync.orchestrator")

_VERSION_RE = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(-[0-9A-Za-z.-]+)?")


def parse_client_version(value: str | None) -> tuple[int, int, int, int]:
    """Parse ``MAJOR.MINOR.PATCH[-pre]`` into a sortable tuple.

    A pre-release sorts before its release.  Missing or unreadable versions
    count as ``0.0.0``.
    """
    match = _VERSION_RE.match((value or "").strip())
    if not match:
        return (0, 0, 0, 1)
    major, minor, patch, pre = match.groups()
    return (int(major), int(minor or 0), int(patch or 0), 0 if pre else 1)


@dataclass
class AccountWipe:
    records: int
    cursors: int
    history: int


class SyncOrchestrator:
    def __init__(
        self,
        records: RecordStore,
        cursors: ShardCursorCache,
        history: HistoryTimeline,
        calendar: CalendarAggregator,
        settings: Settings,
    ) -> None:
        self.records = records
        self.cursors = cursors
        self.history = history
        self.calendar = calendar
        self.page_size = settings.page_size
        self.api_version = settings.api_version
        self._legacy_below = parse_client_version(settings.legacy_status_below)

    @classmethod
    def from_database(cls, db: Database, settings: Settings) -> "SyncOrchestrator":
        cursors = ShardCursorCache(db, settings.cursor_policy)
        return cls(
            records=RecordStore(db, cursors, settings),
            cursors=cursors,
            history=HistoryTimeline(db, settings),
            calendar=CalendarAggregator(db),
            settings=settings,
        )

    def clamp(self, count: int | None) -> int:
        """Apply the page-size ceiling to a requested page length."""
        if count is None:
            return self.page_size
        return max(0, min(count, self.page_size))

    # ---------- Record store ----------

    async def push_records(self, user_id: int, records: Sequence[StoreRecord]) -> None:
        await self.records.add(user_id, records)

    async def pull_records(
        self, user_id: int, host: str, tag: str, count: int | None, start: int
    ) -> list[StoreRecord]:
        return await self.records.get_next_records(user_id, host, tag, self.clamp(count), start)

    async def get_cursors(self, user_id: int) -> CursorMap:
        return await self.cursors.get(user_id)

    async def wipe_store(self, user_id: int) -> int:
        """Remove the account's records and the cursors that describe them."""
        removed = await self.records.delete_store(user_id)
        await self.cursors.delete(user_id)
        return removed

    # ---------- History timeline ----------

    async def add_history(self, user_id: int, items: Sequence[HistoryItem]) -> int:
        return await self.history.add(user_id, items)

    async def get_history(
        self, user_id: int, sync_ts: datetime, history_ts: datetime, host: str
    ) -> list[str]:
        history = await self.history.get_history(
            user_id, sync_ts, history_ts, host, page_size=self.page_size
        )
        logger.info("getHistory for user %s returned %d item(s)", user_id, len(history))
        return history

    async def delete_history(self, user_id: int, client_id: str) -> bool:
        return await self.history.delete(user_id, client_id)

    async def get_count(self, user_id: int) -> int:
        return await self.history.get_count(user_id)

    async def get_status(self, user_id: int) -> HistoryStatus:
        return await self.history.get_status(user_id)

    def wants_legacy_status(self, client_version: str | None) -> bool:
        return parse_client_version(client_version) < self._legacy_below

    async def status_for_client(self, user_id: int, client_version: str | None) -> HistoryStatus:
        """Full count/tombstone status for old clients, an empty one otherwise."""
        if self.wants_legacy_status(client_version):
            return await self.get_status(user_id)
        return HistoryStatus(count=0)

    async def get_history_stats(
        self,
        user_id: int,
        focus: CalendarFocus | str,
        year: int | None = None,
        month: int | None = None,
        tz: str | None = None,
    ) -> dict[int, int]:
        return await self.calendar.get_history_stats(user_id, focus, year=year, month=month, tz=tz)

    # ---------- Account / server ----------

    async def delete_account_data(self, user_id: int) -> AccountWipe:
        """Full-account wipe: records, cursors and history, tombstones included."""
        wipe = AccountWipe(
            records=await self.records.delete_store(user_id),
            cursors=await self.cursors.delete(user_id),
            history=await self.history.delete_all(user_id),
        )
        logger.info(
            "Wiped account data for user %s: %d record(s), %d cursor(s), %d history item(s)",
            user_id, wipe.records, wipe.cursors, wipe.history,
        )
        return wipe

    async def server_totals(self) -> tuple[int, int]:
        """Return ``(approximate store rows, sum of all cursor idx)``."""
        return await self.records.row_count(), await self.cursors.get_total()

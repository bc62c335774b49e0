"""Sync engine: record store, shard cursors, history timeline and calendar."""

from histsync.sync.calendar_stats import CalendarAggregator, CalendarFocus
from histsync.sync.cursor_cache import ShardCursorCache
from histsync.sync.errors import (
    InvalidCalendarQueryError,
    InvalidTimestampError,
    InvalidTimezoneError,
    SyncError,
)
from histsync.sync.history import HistoryItem, HistoryStatus, HistoryTimeline
from histsync.sync.orchestrator import SyncOrchestrator
from histsync.sync.record_store import RecordStore, StoreRecord

__all__ = [
    "CalendarAggregator",
    "CalendarFocus",
    "HistoryItem",
    "HistoryStatus",
    "HistoryTimeline",
    "InvalidCalendarQueryError",
    "InvalidTimestampError",
    "InvalidTimezoneError",
    "RecordStore",
    "ShardCursorCache",
    "StoreRecord",
    "SyncError",
    "SyncOrchestrator",
]

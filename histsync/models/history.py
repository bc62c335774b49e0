"""Wire models for the legacy history and sync endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from histsync.models.base import SyncBase
from histsync.sync.history import HistoryItem


class AddHistoryRequest(SyncBase):
    id: str = Field(min_length=1)
    timestamp: datetime
    data: str
    hostname: str

    def to_item(self) -> HistoryItem:
        return HistoryItem(
            client_id=self.id,
            hostname=self.hostname,
            timestamp=self.timestamp,
            data=self.data,
        )


class DeleteHistoryRequest(SyncBase):
    client_id: str = Field(min_length=1)


class SyncHistoryResponse(SyncBase):
    history: list[str]


class CountResponse(SyncBase):
    count: int


class SyncStatusResponse(SyncBase):
    count: int
    username: str
    deleted: list[str]
    page_size: int
    version: str


class TimePeriodInfo(SyncBase):
    count: int


class ServerStatus(SyncBase):
    version: str  # API version clients negotiate against
    histsync_version: str
    total_history: int  # planner estimate of stored records
    store_total: int  # sum of every shard cursor idx

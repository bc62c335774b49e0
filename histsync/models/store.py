"""Wire models for the record store endpoints."""

from __future__ import annotations

from pydantic import Field

from histsync.models.base import SyncBase
from histsync.sync.record_store import StoreRecord


class HostRef(SyncBase):
    id: str = Field(min_length=1)
    name: str = ""


class RecordData(SyncBase):
    data: str
    content_encryption_key: str


class RecordWire(SyncBase):
    """A record as exchanged with clients on push and pull."""

    id: str = Field(min_length=1)
    idx: int = Field(ge=0)
    host: HostRef
    timestamp: int = Field(ge=0)
    version: str
    tag: str = Field(min_length=1)
    data: RecordData

    def to_record(self) -> StoreRecord:
        return StoreRecord(
            client_id=self.id,
            host=self.host.id,
            tag=self.tag,
            idx=self.idx,
            timestamp=self.timestamp,
            version=self.version,
            data=self.data.data,
            cek=self.data.content_encryption_key,
        )

    @classmethod
    def from_record(cls, record: StoreRecord) -> "RecordWire":
        # host names are not stored server-side
        return cls(
            id=record.client_id,
            idx=record.idx,
            host=HostRef(id=record.host),
            timestamp=record.timestamp,
            version=record.version,
            tag=record.tag,
            data=RecordData(data=record.data, content_encryption_key=record.cek),
        )


class CursorIndex(SyncBase):
    hosts: dict[str, dict[str, int]]

"""Shared fixtures for the sync engine tests."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from histsync.config import Settings
from histsync.services.database import Database
from histsync.services.schema import create_schema
from histsync.sync.history import HistoryItem
from histsync.sync.record_store import StoreRecord

# Storage-backed tests run only when a disposable Postgres is available
TEST_DATABASE_URL = os.environ.get("HISTSYNC_TEST_DATABASE_URL")

TEST_USER_ID = 1
OTHER_USER_ID = 2
VALID_PAYLOAD = '{"ciphertext":[123,345],"nonce":[0,1,2]}'
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def make_record(idx: int, host: str = "hostname1", tag: str = "T", client_id: str | None = None) -> StoreRecord:
    return StoreRecord(
        client_id=client_id or f"record-{host}-{tag}-{idx}",
        host=host,
        tag=tag,
        idx=idx,
        timestamp=1_710_037_337_946_000_000 + idx,
        version="v0",
        data=f"ciphertext-{idx}",
        cek=f"cek-{idx}",
    )


def make_item(
    client_id: str,
    hostname: str = "hostname1",
    timestamp: datetime | None = None,
    data: str = VALID_PAYLOAD,
) -> HistoryItem:
    return HistoryItem(
        client_id=client_id,
        hostname=hostname,
        timestamp=timestamp or datetime(2024, 3, 10, 2, 22, 17, 946000, tzinfo=timezone.utc),
        data=data,
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(page_size=100, max_history_data_size=32768)


# ---------------------------------------------------------------------------
# Database doubles
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> MagicMock:
    """A Database stand-in whose primitives are AsyncMocks."""
    db = MagicMock(spec=Database)
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.executemany = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest_asyncio.fixture
async def pg_db():
    """A real Database with an empty schema, skipped without Postgres."""
    if not TEST_DATABASE_URL:
        pytest.skip("HISTSYNC_TEST_DATABASE_URL not set")
    db = await Database.connect(
        Settings(database_url=TEST_DATABASE_URL, db_pool_min_size=1, db_pool_max_size=4)
    )
    await create_schema(db)
    await db.execute("TRUNCATE store, store_idx_cache, history")
    try:
        yield db
    finally:
        await db.close()

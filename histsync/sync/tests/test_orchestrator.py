"""Tests for the sync orchestrator composition."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from histsync.config import CursorPolicy, Settings
from histsync.sync.calendar_stats import CalendarAggregator
from histsync.sync.cursor_cache import ShardCursorCache
from histsync.sync.history import HistoryStatus, HistoryTimeline
from histsync.sync.orchestrator import AccountWipe, SyncOrchestrator, parse_client_version
from histsync.sync.record_store import RecordStore
from histsync.sync.tests.conftest import (
    EPOCH,
    TEST_USER_ID,
    VALID_PAYLOAD,
    make_item,
    make_record,
)


@pytest.fixture
def orchestrator(settings: Settings) -> SyncOrchestrator:
    return SyncOrchestrator(
        records=MagicMock(spec=RecordStore),
        cursors=MagicMock(spec=ShardCursorCache),
        history=MagicMock(spec=HistoryTimeline),
        calendar=MagicMock(spec=CalendarAggregator),
        settings=settings,
    )


class TestClientVersion:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("18.4.0", (18, 4, 0, 1)),
            ("v18.3", (18, 3, 0, 1)),
            ("18.4.0-beta.2", (18, 4, 0, 0)),
            (None, (0, 0, 0, 1)),
            ("not a version", (0, 0, 0, 1)),
        ],
    )
    def test_parse(self, value: str | None, expected: tuple) -> None:
        assert parse_client_version(value) == expected

    @pytest.mark.parametrize(
        "value, legacy",
        [
            (None, True),
            ("17.2.1", True),
            ("18.3.9", True),
            ("18.4.0-beta.1", True),
            ("18.4.0", False),
            ("19.0.0", False),
        ],
    )
    def test_legacy_gate(self, orchestrator: SyncOrchestrator, value: str | None, legacy: bool) -> None:
        assert orchestrator.wants_legacy_status(value) is legacy


class TestPaging:
    def test_clamp(self, orchestrator: SyncOrchestrator) -> None:
        assert orchestrator.clamp(None) == 100
        assert orchestrator.clamp(10) == 10
        assert orchestrator.clamp(10_000) == 100
        assert orchestrator.clamp(-3) == 0

    @pytest.mark.asyncio
    async def test_pull_uses_clamped_count(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.records.get_next_records.return_value = [make_record(0)]
        records = await orchestrator.pull_records(TEST_USER_ID, "hostname1", "T", 5000, 0)
        assert records == [make_record(0)]
        orchestrator.records.get_next_records.assert_awaited_once_with(
            TEST_USER_ID, "hostname1", "T", 100, 0
        )

    @pytest.mark.asyncio
    async def test_history_page_uses_ceiling(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.history.get_history.return_value = [VALID_PAYLOAD]
        sync_ts = datetime(2024, 3, 10, tzinfo=timezone.utc)
        assert await orchestrator.get_history(TEST_USER_ID, sync_ts, EPOCH, "h2") == [VALID_PAYLOAD]
        orchestrator.history.get_history.assert_awaited_once_with(
            TEST_USER_ID, sync_ts, EPOCH, "h2", page_size=100
        )


class TestStatus:
    @pytest.mark.asyncio
    async def test_legacy_client_gets_full_status(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.history.get_status.return_value = HistoryStatus(count=1, deleted=["clientId2"])
        status = await orchestrator.status_for_client(TEST_USER_ID, "18.3.0")
        assert status == HistoryStatus(count=1, deleted=["clientId2"])

    @pytest.mark.asyncio
    async def test_current_client_gets_empty_status(self, orchestrator: SyncOrchestrator) -> None:
        status = await orchestrator.status_for_client(TEST_USER_ID, "18.4.0")
        assert status == HistoryStatus(count=0, deleted=[])
        orchestrator.history.get_status.assert_not_awaited()


class TestPassThrough:
    @pytest.mark.asyncio
    async def test_push_and_history_delegate(self, orchestrator: SyncOrchestrator) -> None:
        records = [make_record(1)]
        await orchestrator.push_records(TEST_USER_ID, records)
        orchestrator.records.add.assert_awaited_once_with(TEST_USER_ID, records)

        items = [make_item("clientId1")]
        await orchestrator.add_history(TEST_USER_ID, items)
        orchestrator.history.add.assert_awaited_once_with(TEST_USER_ID, items)

    @pytest.mark.asyncio
    async def test_storage_errors_bubble_up(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.history.get_count.side_effect = ConnectionRefusedError("db down")
        with pytest.raises(ConnectionRefusedError):
            await orchestrator.get_count(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_wipe_store_clears_cursors(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.records.delete_store.return_value = 7
        assert await orchestrator.wipe_store(TEST_USER_ID) == 7
        orchestrator.cursors.delete.assert_awaited_once_with(TEST_USER_ID)

    @pytest.mark.asyncio
    async def test_account_wipe_covers_every_table(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.records.delete_store.return_value = 3
        orchestrator.cursors.delete.return_value = 1
        orchestrator.history.delete_all.return_value = 5
        assert await orchestrator.delete_account_data(TEST_USER_ID) == AccountWipe(
            records=3, cursors=1, history=5
        )

    @pytest.mark.asyncio
    async def test_server_totals(self, orchestrator: SyncOrchestrator) -> None:
        orchestrator.records.row_count.return_value = 10
        orchestrator.cursors.get_total.return_value = 55
        assert await orchestrator.server_totals() == (10, 55)


class TestFromDatabase:
    def test_wires_configured_cursor_policy(self, mock_db: MagicMock) -> None:
        sync = SyncOrchestrator.from_database(mock_db, Settings(cursor_policy=CursorPolicy.max))
        assert sync.cursors.policy is CursorPolicy.max
        assert sync.page_size == 1100

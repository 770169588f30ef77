"""Tests for the production uploader and the offline sync sweep."""

import json
from unittest.mock import AsyncMock

import pytest

from iamcfo.production.analytics import FALLBACK_NOTICE
from iamcfo.production.queue import LocalQueue
from iamcfo.production.sync import ProductionLog, ProductionUploader, photo_file_name
from iamcfo.state import AppStore
from iamcfo.tools.supabase_api import DataStoreError

from conftest import make_query

SERVER_ROW = {
    "id": "srv-1",
    "log_date": "2025-09-26",
    "tonnage": 80,
    "price_per_ton": 20,
    "total_amount": 1600,
    "client_name": "Panzarella",
    "processing_status": "Mobile Entry",
    "created_at": "2025-09-27T08:00:00+00:00",
}


class Connectivity:
    def __init__(self, online: bool = True):
        self.online = online

    def __call__(self) -> bool:
        return self.online


@pytest.fixture
def connectivity():
    return Connectivity()


@pytest.fixture
def queue(tmp_path):
    return LocalQueue(tmp_path)


@pytest.fixture
def log(mock_supabase, queue, connectivity):
    uploader = ProductionUploader(mock_supabase, bucket="production-photos")
    return ProductionLog(
        mock_supabase,
        queue=queue,
        store=AppStore(),
        uploader=uploader,
        is_online=connectivity,
        fetch_limit=200,
    )


def test_photo_file_name_uses_hash_prefix_and_time():
    assert photo_file_name("abcdef0123456789", "png", now_ms=1727424000000) == (
        "abcdef01-1727424000000.png"
    )


class TestUploader:
    @pytest.mark.asyncio
    async def test_new_photo_is_uploaded_then_row_inserted(self, mock_supabase, make_entry, photo):
        mock_supabase.insert.return_value = SERVER_ROW
        uploader = ProductionUploader(mock_supabase, bucket="production-photos")

        result = await uploader.upload(make_entry(photo=photo))

        assert result.duplicate is False
        bucket, path, data = mock_supabase.upload.await_args.args
        assert bucket == "production-photos"
        assert path.startswith(photo.hash[:8] + "-")
        assert path.endswith(".jpg")
        assert data == photo.decoded()
        assert mock_supabase.upload.await_args.kwargs["upsert"] is False

        table, payload = mock_supabase.insert.await_args.args
        assert table == "wastex_production_logs"
        assert payload["photo_hash"] == photo.hash
        assert payload["file_name"] == path
        assert payload["file_url"].endswith(f"/production-photos/{path}")

        assert result.entry.id == "srv-1"
        assert result.entry.synced is True
        assert result.entry.photo is None
        assert result.entry.file_url == payload["file_url"]

    @pytest.mark.asyncio
    async def test_duplicate_photo_reuses_existing_file(self, mock_supabase, make_entry, photo):
        existing = {"file_url": "https://cdn.example/old.jpg", "file_name": "old.jpg"}
        mock_supabase.table.return_value = make_query([existing])
        mock_supabase.insert.return_value = SERVER_ROW
        uploader = ProductionUploader(mock_supabase, bucket="production-photos")

        result = await uploader.upload(make_entry(photo=photo))

        assert result.duplicate is True
        mock_supabase.upload.assert_not_awaited()
        payload = mock_supabase.insert.await_args.args[1]
        assert payload["file_url"] == "https://cdn.example/old.jpg"
        assert payload["file_name"] == "old.jpg"

    @pytest.mark.asyncio
    async def test_entry_without_photo_skips_storage(self, mock_supabase, make_entry):
        mock_supabase.insert.return_value = SERVER_ROW
        uploader = ProductionUploader(mock_supabase, bucket="production-photos")

        await uploader.upload(make_entry())

        mock_supabase.table.assert_not_called()
        mock_supabase.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_insert_failure_propagates(self, mock_supabase, make_entry):
        mock_supabase.insert.side_effect = DataStoreError("API error: 500", status_code=500)
        uploader = ProductionUploader(mock_supabase, bucket="production-photos")

        with pytest.raises(DataStoreError):
            await uploader.upload(make_entry())


class TestOfflineSync:
    @pytest.mark.asyncio
    async def test_offline_entry_syncs_when_connection_returns(
        self, log, queue, connectivity, mock_supabase, make_entry, photo
    ):
        connectivity.online = False
        entry = make_entry(photo=photo)

        result = await log.submit(entry)

        assert result.queued is True
        assert [e.id for e in log.pending] == ["local-1"]
        assert [e.synced for e in log.entries()] == [False]
        assert [e.id for e in queue.load()[1]] == ["local-1"]
        mock_supabase.insert.assert_not_awaited()

        connectivity.online = True
        mock_supabase.insert.return_value = SERVER_ROW
        report = await log.on_connectivity_restored()

        assert [e.id for e in report.synced] == ["srv-1"]
        assert report.remaining == []
        assert log.pending == []
        entries = log.entries()
        assert len(entries) == 1
        assert entries[0].id == "srv-1"
        assert entries[0].synced is True
        confirmed, pending = queue.load()
        assert [e.id for e in confirmed] == ["srv-1"]
        assert pending == []

    @pytest.mark.asyncio
    async def test_failed_upload_stays_queued(self, log, connectivity, mock_supabase, make_entry):
        connectivity.online = False
        await log.submit(make_entry())
        connectivity.online = True
        mock_supabase.insert.side_effect = DataStoreError("API error: 503", status_code=503)

        report = await log.sync()

        assert report.synced == []
        assert [e.id for e in report.remaining] == ["local-1"]
        assert [e.id for e in log.pending] == ["local-1"]
        assert log.store.state.production.last_sync_failures == 1

    @pytest.mark.asyncio
    async def test_sweep_preserves_queue_order(self, log, connectivity, mock_supabase, make_entry):
        connectivity.online = False
        await log.submit(make_entry("first", client="A"))
        await log.submit(make_entry("second", client="B"))
        connectivity.online = True
        mock_supabase.insert.side_effect = [
            {**SERVER_ROW, "id": "srv-a", "client_name": "A"},
            {**SERVER_ROW, "id": "srv-b", "client_name": "B"},
        ]

        await log.sync()

        clients = [c.args[1]["client_name"] for c in mock_supabase.insert.await_args_list]
        assert clients == ["A", "B"]

    @pytest.mark.asyncio
    async def test_uploaded_entry_leaves_disk_queue_before_sweep_ends(
        self, log, queue, connectivity, mock_supabase, make_entry
    ):
        connectivity.online = False
        await log.submit(make_entry("first", client="A"))
        await log.submit(make_entry("second", client="B"))
        connectivity.online = True
        mock_supabase.insert.side_effect = [
            {**SERVER_ROW, "id": "srv-a", "client_name": "A"},
            RuntimeError("process killed"),
        ]

        with pytest.raises(RuntimeError):
            await log.sync()

        confirmed, pending = queue.load()
        assert [e.id for e in confirmed] == ["srv-a"]
        assert [e.id for e in pending] == ["second"]

    @pytest.mark.asyncio
    async def test_identical_offline_loads_are_both_listed(
        self, log, connectivity, mock_supabase, make_entry
    ):
        mock_supabase.insert.return_value = SERVER_ROW
        await log.submit(make_entry("first-load"))
        connectivity.online = False

        await log.submit(make_entry("second-load"))

        assert {e.id for e in log.entries()} == {"srv-1", "second-load"}

    @pytest.mark.asyncio
    async def test_overlapping_sweep_is_skipped(self, log, connectivity, make_entry):
        connectivity.online = False
        await log.submit(make_entry())
        connectivity.online = True

        async with log._sweep_lock:
            report = await log.sync()

        assert report.skipped is True
        assert [e.id for e in log.pending] == ["local-1"]

    @pytest.mark.asyncio
    async def test_online_submit_confirms_immediately(self, log, mock_supabase, make_entry):
        mock_supabase.insert.return_value = SERVER_ROW

        result = await log.submit(make_entry())

        assert result.queued is False
        assert result.entry.id == "srv-1"
        assert log.pending == []
        assert [e.id for e in log.confirmed] == ["srv-1"]


class TestLoad:
    @pytest.mark.asyncio
    async def test_load_merges_remote_with_pending(
        self, log, queue, connectivity, mock_supabase, make_entry
    ):
        connectivity.online = False
        queue.save([], [make_entry("local-9", client="Metro Waste")])
        query = make_query([SERVER_ROW])
        mock_supabase.table.return_value = query

        await log.load()

        ids = {e.id for e in log.entries()}
        assert ids == {"srv-1", "local-9"}
        query.order.assert_called_once_with("log_date", ascending=False)
        query.limit.assert_called_once_with(200)

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_cached_entries(
        self, log, queue, connectivity, mock_supabase, make_entry
    ):
        connectivity.online = False
        queue.save([make_entry("cached", synced=True)], [])
        mock_supabase.table.return_value = make_query(error=DataStoreError("down"))

        await log.load()

        assert [e.id for e in log.entries()] == ["cached"]

    @pytest.mark.asyncio
    async def test_load_sweeps_pending_when_online(self, log, queue, mock_supabase, make_entry):
        queue.save([], [make_entry()])
        mock_supabase.insert = AsyncMock(return_value=SERVER_ROW)

        await log.load()

        mock_supabase.insert.assert_awaited_once()
        assert log.pending == []

    @pytest.mark.asyncio
    async def test_unreadable_queue_item_does_not_wipe_the_rest(
        self, log, queue, tmp_path, connectivity, mock_supabase, make_entry
    ):
        connectivity.online = False
        good = make_entry("good").to_dict()
        bad = {**make_entry("bad", client="B").to_dict(), "photo": "not-a-dict"}
        (tmp_path / "wastex-production-offline.json").write_text(json.dumps([good, bad]))
        mock_supabase.table.return_value = make_query([SERVER_ROW])

        await log.load()

        assert [e.id for e in queue.load()[1]] == ["good"]
        kept = list(tmp_path.glob("wastex-production-offline.*.corrupt"))
        assert kept
        assert "bad" in {item["id"] for item in json.loads(kept[0].read_text())}


class TestDashboardEntries:
    @pytest.mark.asyncio
    async def test_read_failure_falls_back_to_demo_rows(self, log, mock_supabase):
        mock_supabase.table.return_value = make_query(error=DataStoreError("down"))

        entries, notice = await log.dashboard_entries()

        assert notice == FALLBACK_NOTICE
        assert [e.client_name for e in entries][0] == "Panzarella"
        assert len(entries) == 4

    @pytest.mark.asyncio
    async def test_remote_rows_have_no_notice(self, log, mock_supabase):
        mock_supabase.table.return_value = make_query([SERVER_ROW])

        entries, notice = await log.dashboard_entries()

        assert notice is None
        assert entries[0].id == "srv-1"

"""Upload production entries and drain the offline queue.

Each queued entry goes Pending -> Uploading -> Confirmed, or back to Pending
when the upload fails. Sweeps process the queue one entry at a time so two
uploads of the same new photo cannot both miss each other's dedup record.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import structlog

from iamcfo.config import get_settings
from iamcfo.production.analytics import FALLBACK_NOTICE, fallback_logs
from iamcfo.production.identity import EntryKey, entry_key
from iamcfo.production.merge import merge_entries, sort_newest_first
from iamcfo.production.models import ProductionEntry, hash_base64
from iamcfo.production.queue import LocalQueue
from iamcfo.state import (
    AppStore,
    EntriesLoaded,
    EntryConfirmed,
    EntryQueued,
    SyncFinished,
    SyncStarted,
)
from iamcfo.tools.supabase_api import PRODUCTION_LOGS_TABLE, DataStoreError, SupabaseClient

logger = structlog.get_logger(__name__)

EMPTY_NOTICE = "No production logs found. Try selecting a different range."


@dataclass
class UploadResult:
    entry: ProductionEntry
    duplicate: bool = False


@dataclass
class SubmitResult:
    entry: ProductionEntry
    duplicate: bool = False
    queued: bool = False


@dataclass
class SyncReport:
    synced: list[ProductionEntry]
    remaining: list[ProductionEntry]
    skipped: bool = False


def photo_file_name(photo_hash: str, extension: str, now_ms: int | None = None) -> str:
    """Storage filename: hash prefix, upload time in ms, original extension."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{photo_hash[:8]}-{stamp}.{extension}"


class ProductionUploader:
    """Persists one entry: photo upload with hash dedup, then the row insert."""

    def __init__(
        self,
        client: SupabaseClient,
        bucket: str | None = None,
        table: str = PRODUCTION_LOGS_TABLE,
    ):
        self.client = client
        self.bucket = bucket or get_settings().photo_bucket
        self.table = table

    async def find_by_hash(self, photo_hash: str) -> dict[str, Any] | None:
        """An existing row with the same photo, if any."""
        try:
            rows = await (
                self.client.table(self.table)
                .select("file_url,file_name")
                .eq("photo_hash", photo_hash)
                .limit(1)
                .execute()
            )
        except DataStoreError as e:
            # A failed lookup only costs a second copy of the photo
            logger.warning("duplicate_lookup_failed", photo_hash=photo_hash[:8], error=str(e))
            return None
        return rows[0] if rows else None

    async def upload(self, entry: ProductionEntry) -> UploadResult:
        """Insert ``entry`` remotely; raises DataStoreError on failure."""
        payload = entry.to_insert_payload()
        duplicate = False
        log = logger.bind(entry_id=entry.id)

        if entry.photo and entry.photo.base64:
            photo_hash = entry.photo.hash or hash_base64(entry.photo.base64)
            payload["photo_hash"] = photo_hash

            existing = await self.find_by_hash(photo_hash)
            if existing:
                duplicate = True
                payload["file_url"] = existing.get("file_url")
                payload["file_name"] = existing.get("file_name")
                log.info("duplicate_photo_reused", photo_hash=photo_hash[:8])
            else:
                path = photo_file_name(photo_hash, entry.photo.extension)
                await self.client.upload(
                    self.bucket,
                    path,
                    entry.photo.decoded(),
                    content_type=entry.photo.mime_type,
                    upsert=False,
                )
                payload["file_url"] = self.client.get_public_url(self.bucket, path)
                payload["file_name"] = path

        row = await self.client.insert(self.table, payload)
        fallback = replace(
            entry,
            file_url=payload.get("file_url"),
            file_name=payload.get("file_name"),
            photo_hash=payload.get("photo_hash"),
        )
        saved = ProductionEntry.from_record(row, fallback=fallback)
        log.info("entry_uploaded", remote_id=saved.id, duplicate=duplicate)
        return UploadResult(entry=saved, duplicate=duplicate)


class ProductionLog:
    """Production entries shown to the user, backed by the store and local queue."""

    def __init__(
        self,
        client: SupabaseClient,
        queue: LocalQueue | None = None,
        store: AppStore | None = None,
        uploader: ProductionUploader | None = None,
        is_online: Callable[[], bool] = lambda: True,
        fetch_limit: int | None = None,
    ):
        self.client = client
        self.queue = queue or LocalQueue()
        self.store = store or AppStore()
        self.uploader = uploader or ProductionUploader(client)
        self.is_online = is_online
        self.fetch_limit = fetch_limit or get_settings().fetch_limit
        self._sweep_lock = asyncio.Lock()

    @property
    def pending(self) -> list[ProductionEntry]:
        return list(self.store.state.production.pending)

    @property
    def confirmed(self) -> list[ProductionEntry]:
        return self.store.state.production.confirmed

    def entries(self) -> list[ProductionEntry]:
        """Merged display list, newest first."""
        return sort_newest_first(self.store.state.production.entries)

    def _persist(self) -> None:
        # Only server-confirmed rows go to the confirmed slot
        production = self.store.state.production
        self.queue.save(production.confirmed, list(production.pending))

    def _checkpoint(self, synced: list[ProductionEntry], uploaded: set[EntryKey]) -> None:
        """Drop uploaded entries from the on-disk queue while a sweep is running."""
        production = self.store.state.production
        pending = [e for e in production.pending if entry_key(e) not in uploaded]
        self.queue.save(synced + production.confirmed, pending)

    async def fetch_remote(self) -> list[ProductionEntry]:
        rows = await (
            self.client.table(PRODUCTION_LOGS_TABLE)
            .select("*")
            .order("log_date", ascending=False)
            .limit(self.fetch_limit)
            .execute()
        )
        return [ProductionEntry.from_record(row) for row in rows]

    async def dashboard_entries(self) -> tuple[list[ProductionEntry], str | None]:
        """Remote entries for the analytics view, with a notice for the user.

        A failed read falls back to the illustrative demo rows.
        """
        try:
            remote = await self.fetch_remote()
        except DataStoreError as e:
            logger.error("dashboard_load_failed", error=str(e))
            return fallback_logs(), FALLBACK_NOTICE
        if not remote:
            return [], EMPTY_NOTICE
        return remote, None

    async def load(self) -> None:
        """Show cached entries, then refresh from the store and drain the queue."""
        cached, pending = self.queue.load()
        if cached or pending:
            self.store.dispatch(EntriesLoaded(tuple(merge_entries(cached, pending)), tuple(pending)))
        else:
            self.store.dispatch(EntriesLoaded((), ()))

        try:
            remote = await self.fetch_remote()
        except DataStoreError as e:
            logger.error("production_load_failed", error=str(e))
        else:
            combined = merge_entries(remote, pending)
            self.store.dispatch(EntriesLoaded(tuple(combined), tuple(pending)))
            self._persist()
            logger.info("production_loaded", remote=len(remote), pending=len(pending))

        await self._sweep_if_ready()

    async def submit(self, entry: ProductionEntry) -> SubmitResult:
        """Upload right away when online, otherwise queue for the next sweep."""
        if self.is_online():
            try:
                result = await self.uploader.upload(entry)
            except (DataStoreError, ValueError) as e:
                logger.error("entry_upload_failed", entry_id=entry.id, error=str(e))
            else:
                self.store.dispatch(EntryConfirmed(result.entry))
                self._persist()
                return SubmitResult(result.entry, duplicate=result.duplicate)

        self.store.dispatch(EntryQueued(entry))
        self._persist()
        logger.info("entry_queued", entry_id=entry.id, pending=len(self.pending))
        await self._sweep_if_ready()
        return SubmitResult(entry, queued=True)

    async def on_connectivity_restored(self) -> SyncReport:
        logger.info("connectivity_restored", pending=len(self.pending))
        return await self.sync()

    async def _sweep_if_ready(self) -> None:
        if self.pending and self.is_online():
            await self.sync()

    async def sync(self) -> SyncReport:
        """One sweep over the whole pending queue, in queue order.

        Failed entries stay queued. Each uploaded entry leaves the on-disk
        queue right away, so a crash mid-sweep cannot insert it twice; the
        store is updated once at the end.
        """
        queue = self.pending
        if not queue or not self.is_online():
            return SyncReport(synced=[], remaining=queue, skipped=True)
        if self._sweep_lock.locked():
            logger.debug("sync_already_running")
            return SyncReport(synced=[], remaining=queue, skipped=True)

        async with self._sweep_lock:
            self.store.dispatch(SyncStarted())
            synced: list[ProductionEntry] = []
            remaining: list[ProductionEntry] = []
            uploaded: set[EntryKey] = set()

            for entry in queue:
                try:
                    result = await self.uploader.upload(entry)
                except (DataStoreError, ValueError) as e:
                    logger.error("entry_sync_failed", entry_id=entry.id, error=str(e))
                    remaining.append(entry)
                else:
                    synced.append(result.entry)
                    uploaded.add(entry_key(entry))
                    self._checkpoint(synced, uploaded)

            self.store.dispatch(SyncFinished(tuple(queue), tuple(synced), tuple(remaining)))
            self._persist()

        logger.info("sync_finished", synced=len(synced), remaining=len(remaining))
        return SyncReport(synced=synced, remaining=remaining)

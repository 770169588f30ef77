"""Resolve stored production photo references into viewable links."""

import re
from dataclasses import dataclass

import structlog

from iamcfo.config import get_settings
from iamcfo.production.models import ProductionEntry
from iamcfo.tools.supabase_api import DataStoreError, SupabaseClient

logger = structlog.get_logger(__name__)

_STORAGE_PROTOCOL = re.compile(r"^storage://([^/]+)/(.+)$", re.IGNORECASE)
_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def is_absolute_url(value: str) -> bool:
    return bool(_ABSOLUTE_URL.match(value))


def parse_storage_reference(value: str, default_bucket: str) -> tuple[str, str]:
    """Split a stored reference into ``(bucket, path)``.

    Accepts ``storage://bucket/path``, ``bucket/path`` for the default bucket,
    or a bare path inside the default bucket.
    """
    match = _STORAGE_PROTOCOL.match(value)
    if match:
        return match.group(1), match.group(2)

    trimmed = value.lstrip("/")
    prefix = f"{default_bucket}/"
    if trimmed.startswith(prefix):
        return default_bucket, trimmed[len(prefix):]
    return default_bucket, trimmed


@dataclass
class PhotoReference:
    public_url: str | None
    bucket: str | None
    storage_path: str | None
    raw_url: str | None

    @property
    def available(self) -> bool:
        return bool(self.public_url or self.storage_path or self.raw_url)


def resolve_photo(
    client: SupabaseClient, raw_reference: str | None, default_bucket: str | None = None
) -> PhotoReference:
    if not raw_reference:
        return PhotoReference(None, None, None, None)
    if is_absolute_url(raw_reference):
        return PhotoReference(raw_reference, None, None, raw_reference)

    bucket, path = parse_storage_reference(
        raw_reference, default_bucket or get_settings().photo_bucket
    )
    if not path:
        return PhotoReference(None, bucket, None, raw_reference)
    return PhotoReference(client.get_public_url(bucket, path), bucket, path, raw_reference)


class PhotoViewer:
    """Shows one entry's photo, refreshing an expired signed link once.

    States: closed, loading, showing ``url``, or ``failed`` with the raw
    stored reference as the fallback link.
    """

    def __init__(self, client: SupabaseClient, default_bucket: str | None = None):
        self.client = client
        self._default_bucket = default_bucket
        self.reference: PhotoReference | None = None
        self.url: str | None = None
        self.title: str = ""
        self.is_open = False
        self.is_loading = False
        self.failed = False
        self.notice: str | None = None
        self._refreshed = False
        self._cancelled = False

    @property
    def fallback_url(self) -> str | None:
        return self.reference.raw_url if self.reference else None

    async def open(self, entry: ProductionEntry) -> bool:
        """Open an entry's photo; False when it has none."""
        reference = resolve_photo(self.client, entry.file_url, self._default_bucket)
        if not reference.available:
            self.notice = "No production photo is available for this entry yet."
            return False

        self.reference = reference
        self.title = entry.file_name or entry.log_date.isoformat()
        self.url = reference.public_url
        self.is_open = True
        self.failed = False
        self._refreshed = False
        self._cancelled = False

        if not self.url and reference.bucket and reference.storage_path:
            await self._load_signed_url()
        return True

    async def _load_signed_url(self) -> None:
        assert self.reference is not None
        self.is_loading = True
        try:
            signed = await self.client.create_signed_url(
                self.reference.bucket or "", self.reference.storage_path or ""
            )
        except DataStoreError as e:
            if self._cancelled:
                return
            logger.error("signed_url_failed", path=self.reference.storage_path, error=str(e))
            self.is_loading = False
            self.failed = True
            self.notice = "Unable to open the production photo right now. Please try again later."
            return
        if self._cancelled:
            return
        self.is_loading = False
        if signed:
            self.url = signed
            self.failed = False
        else:
            self.failed = True

    async def report_load_failure(self) -> None:
        """The current link did not load; request a fresh one at most once."""
        if not self.is_open or self._cancelled:
            return
        reference = self.reference
        if self._refreshed or not reference or not reference.storage_path or not reference.bucket:
            self.failed = True
            return
        self._refreshed = True
        logger.info("refreshing_photo_link", path=reference.storage_path)
        await self._load_signed_url()

    def close(self) -> None:
        self._cancelled = True
        self.is_open = False
        self.is_loading = False
        self.url = None
        self.reference = None
        self.failed = False

"""Pytest configuration and fixtures."""

import os
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

from iamcfo.production.models import ProductionEntry, ProductionPhoto  # noqa: E402

SUPABASE_URL = "https://test.supabase.co"


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


def make_query(rows=None, error=None):
    """A chainable query mock whose execute() returns ``rows`` or raises ``error``."""
    query = MagicMock()
    for method in ("select", "eq", "neq", "gt", "gte", "lte", "is_null", "not_null", "order", "limit"):
        getattr(query, method).return_value = query
    if error is not None:
        query.execute = AsyncMock(side_effect=error)
    else:
        query.execute = AsyncMock(return_value=rows or [])
    return query


@pytest.fixture
def mock_supabase():
    """A SupabaseClient stand-in with table queries, insert and storage."""
    client = MagicMock()
    client.table.return_value = make_query([])
    client.insert = AsyncMock()
    client.upload = AsyncMock(return_value={})
    client.create_signed_url = AsyncMock()
    client.get_public_url = MagicMock(
        side_effect=lambda bucket, path: f"{SUPABASE_URL}/storage/v1/object/public/{bucket}/{path}"
    )
    return client


@pytest.fixture
def photo():
    """A small JPEG-ish payload with its hash."""
    return ProductionPhoto.from_bytes(b"\xff\xd8\xff-production-photo", "IMG_0042.JPG")


@pytest.fixture
def make_entry():
    """Factory for production entries with sensible defaults."""

    def _make(
        entry_id: str = "local-1",
        log_date: date = date(2025, 9, 26),
        tonnage: str = "80",
        price: str = "20",
        client: str = "Panzarella",
        synced: bool = False,
        photo: ProductionPhoto | None = None,
        created_at: datetime | None = None,
        **kwargs,
    ) -> ProductionEntry:
        tons = Decimal(tonnage)
        rate = Decimal(price)
        return ProductionEntry(
            id=entry_id,
            log_date=log_date,
            tonnage=tons,
            price_per_ton=rate,
            total_amount=kwargs.pop("total_amount", tons * rate),
            client_name=client,
            photo_hash=kwargs.pop("photo_hash", photo.hash if photo else None),
            file_name=kwargs.pop("file_name", photo.file_name if photo else None),
            created_at=created_at or datetime(2025, 9, 27, 7, 42, tzinfo=UTC),
            synced=synced,
            photo=photo,
            **kwargs,
        )

    return _make

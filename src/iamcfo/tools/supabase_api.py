"""Supabase REST and Storage client with retry handling."""

import asyncio
from typing import Any, cast
from urllib.parse import quote

import httpx
import structlog

from iamcfo.config import get_settings

logger = structlog.get_logger(__name__)

PRODUCTION_LOGS_TABLE = "wastex_production_logs"
JOURNAL_LINES_TABLE = "journal_entry_lines"
AR_AGING_TABLE = "ar_aging_detail"
AP_AGING_TABLE = "ap_aging"
PAYMENTS_TABLE = "payments"


class DataStoreError(Exception):
    """Base exception for data store errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(DataStoreError):
    """Service key rejected."""

    pass


class RateLimitError(DataStoreError):
    """Rate limit exceeded."""

    pass


def _render_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Query:
    """Chainable select against one table.

    Filters render to PostgREST query parameters, e.g. ``date=gte.2025-01-01``.
    """

    def __init__(self, client: "SupabaseClient", table: str):
        self._client = client
        self.table = table
        self._columns = "*"
        self._filters: list[tuple[str, str]] = []
        self._order: str | None = None
        self._limit: int | None = None

    def select(self, columns: str = "*") -> "Query":
        self._columns = columns.replace(" ", "")
        return self

    def _filter(self, column: str, op: str, value: Any) -> "Query":
        self._filters.append((column, f"{op}.{_render_value(value)}"))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._filter(column, "neq", value)

    def gt(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gt", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "gte", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._filter(column, "lte", value)

    def is_null(self, column: str) -> "Query":
        return self._filter(column, "is", None)

    def not_null(self, column: str) -> "Query":
        return self._filter(column, "not.is", None)

    def order(self, column: str, ascending: bool = True) -> "Query":
        self._order = f"{column}.{'asc' if ascending else 'desc'}"
        return self

    def limit(self, count: int) -> "Query":
        self._limit = count
        return self

    def params(self) -> list[tuple[str, str]]:
        """Render the query as a list of query parameters."""
        params: list[tuple[str, str]] = [("select", self._columns)]
        params.extend(self._filters)
        if self._order:
            params.append(("order", self._order))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        return params

    async def execute(self) -> list[dict[str, Any]]:
        """Run the select and return the matching rows."""
        result = await self._client.get(f"/rest/v1/{self.table}", params=self.params())
        return self._client._extract_rows(result)


class SupabaseClient:
    """Async client for the Supabase REST (PostgREST) and Storage APIs."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self._service_key = service_key or settings.supabase_service_key.get_secret_value()
        self._timeout = timeout if timeout is not None else settings.supabase_timeout
        self._max_retries = (
            max_retries if max_retries is not None else settings.supabase_max_retries
        )
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SupabaseClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | dict[str, Any] | None = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        retry_count: int = 0,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make an authenticated request with retry logic."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                content=content,
                headers=self._get_headers(headers),
            )

            if response.status_code in (401, 403):
                raise AuthenticationError(
                    "Service key rejected", status_code=response.status_code
                )

            if response.status_code == 429:
                retry_after = int(response.headers.get("Retry-After", "60"))
                raise RateLimitError(
                    f"Rate limited, retry after {retry_after}s",
                    status_code=429,
                    details={"retry_after": retry_after},
                )

            if response.status_code >= 400:
                try:
                    error_detail = response.json() if response.content else {}
                except Exception:
                    error_detail = {
                        "raw": response.text[:500]
                        if response.text
                        else "empty response"
                    }
                raise DataStoreError(
                    f"API error: {response.status_code}",
                    status_code=response.status_code,
                    details=error_detail,
                )

            return response.json() if response.content else {}

        except httpx.RequestError as e:
            if retry_count < self._max_retries:
                await asyncio.sleep(2**retry_count)  # Exponential backoff
                return await self._request(
                    method, path, params, json, content, headers, retry_count + 1
                )
            raise DataStoreError(f"Request failed: {e}") from e

    async def get(
        self, path: str, params: list[tuple[str, str]] | dict[str, Any] | None = None
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make GET request."""
        return await self._request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any] | list[dict[str, Any]]:
        """Make POST request."""
        return await self._request("POST", path, json=json, headers=headers)

    @staticmethod
    def _extract_rows(result: Any) -> list[dict[str, Any]]:
        """Return a list of rows from a list or single-object response."""
        if isinstance(result, list):
            return result
        if isinstance(result, dict) and result:
            return [result]
        return []

    # === Tables ===

    def table(self, name: str) -> Query:
        """Start a select against a table."""
        return Query(self, name)

    async def insert(self, table: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        result = await self.post(
            f"/rest/v1/{table}",
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        rows = self._extract_rows(result)
        if not rows:
            raise DataStoreError(f"Insert into {table} returned no row")
        logger.debug("row_inserted", table=table)
        return rows[0]

    # === Storage ===

    @staticmethod
    def _object_path(bucket: str, path: str) -> str:
        return f"{quote(bucket)}/{quote(path.lstrip('/'))}"

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> dict[str, Any]:
        """Upload raw bytes to a storage bucket."""
        result = await self._request(
            "POST",
            f"/storage/v1/object/{self._object_path(bucket, path)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )
        logger.info("object_uploaded", bucket=bucket, path=path, size=len(data))
        return cast(dict[str, Any], result) if isinstance(result, dict) else {}

    def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        return f"{self.base_url}/storage/v1/object/public/{self._object_path(bucket, path)}"

    async def create_signed_url(
        self, bucket: str, path: str, expires_in: int | None = None
    ) -> str | None:
        """Issue a short-lived signed URL for an object in a private bucket."""
        expiry = expires_in if expires_in is not None else get_settings().signed_url_expiry
        result = await self.post(
            f"/storage/v1/object/sign/{self._object_path(bucket, path)}",
            json={"expiresIn": expiry},
        )
        if not isinstance(result, dict):
            return None
        signed = result.get("signedURL") or result.get("signedUrl")
        if not signed:
            return None
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"

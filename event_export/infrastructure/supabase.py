"""Async access to the Supabase project backing the event console."""
from __future__ import annotations

from typing import Any, Mapping, Protocol
from urllib.parse import quote, urlparse

import httpx


class SupabaseError(RuntimeError):
    """Raised when the data store or storage API cannot satisfy a request."""


class DataStore(Protocol):
    """Contract for the remote data store consumed by the export pipeline."""

    async def query(
        self,
        table: str,
        filters: Mapping[str, Any],
        *,
        select: str = "*",
        order: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return rows of ``table`` matching every equality filter."""

    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """Return a signed URL granting ``ttl_seconds`` of read access."""

    async def download(self, url: str) -> bytes:
        """Fetch the raw bytes behind ``url``."""


class UnconfiguredDataStore:
    """Fallback store used when no Supabase project is configured."""

    reason = "Supabase is not configured (set SUPABASE_URL and SUPABASE_KEY)"

    async def query(self, table: str, filters: Mapping[str, Any], **_: Any) -> list[dict[str, Any]]:
        raise SupabaseError(self.reason)

    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> str:
        raise SupabaseError(self.reason)

    async def download(self, url: str) -> bytes:
        raise SupabaseError(self.reason)


class SupabaseClient:
    """Minimal PostgREST + Storage client on top of :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        api_base: str,
        api_key: str,
        *,
        access_token: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._base = f"{parsed.scheme}://{parsed.netloc}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
        }
        self._client = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_client = http_client is None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _filter_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _build_query_params(
        self,
        filters: Mapping[str, Any],
        select: str,
        order: str | None,
        descending: bool,
    ) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = [("select", select)]
        for column, value in filters.items():
            if value is None:
                params.append((column, "is.null"))
            else:
                params.append((column, f"eq.{self._filter_value(value)}"))
        if order:
            params.append(("order", f"{order}.{'desc' if descending else 'asc'}"))
        return params

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def query(
        self,
        table: str,
        filters: Mapping[str, Any],
        *,
        select: str = "*",
        order: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        url = f"{self._base}/rest/v1/{table}"
        params = self._build_query_params(filters, select, order, descending)
        try:
            response = await self._client.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            raise SupabaseError(f"{table}: {exc}") from exc
        if response.status_code >= 400:
            raise SupabaseError(f"{table}: {self._error_message(response)}")

        try:
            rows = response.json()
        except ValueError as exc:
            raise SupabaseError(f"{table}: response is not JSON") from exc
        if not isinstance(rows, list):
            raise SupabaseError(f"{table}: expected a list of rows")
        return [row for row in rows if isinstance(row, dict)]

    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> str:
        url = f"{self._base}/storage/v1/object/sign/{quote(bucket)}/{quote(path)}"
        try:
            response = await self._client.post(url, json={"expiresIn": ttl_seconds}, headers=self._headers)
        except httpx.HTTPError as exc:
            raise SupabaseError(f"sign {bucket}/{path}: {exc}") from exc
        if response.status_code >= 400:
            raise SupabaseError(f"sign {bucket}/{path}: {self._error_message(response)}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise SupabaseError(f"sign {bucket}/{path}: response is not JSON") from exc
        if not isinstance(payload, dict):
            raise SupabaseError(f"sign {bucket}/{path}: unexpected response shape")
        signed = payload.get("signedURL") or payload.get("signedUrl")
        if not isinstance(signed, str) or not signed:
            raise SupabaseError(f"sign {bucket}/{path}: no signed URL returned")
        if signed.startswith("http"):
            return signed
        # the storage API answers with a path relative to /storage/v1
        return f"{self._base}/storage/v1/{signed.lstrip('/')}"

    async def download(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise SupabaseError(f"download {url}: {exc}") from exc
        if response.status_code >= 400:
            raise SupabaseError(f"download {url}: HTTP {response.status_code}")
        return response.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


_store: DataStore = UnconfiguredDataStore()


def configure_data_store(store: DataStore) -> None:
    """Install the data store used by the export pipeline."""

    global _store
    _store = store


def get_data_store() -> DataStore:
    """Return the currently configured data store."""

    return _store


__all__ = [
    "DataStore",
    "SupabaseClient",
    "SupabaseError",
    "UnconfiguredDataStore",
    "configure_data_store",
    "get_data_store",
]

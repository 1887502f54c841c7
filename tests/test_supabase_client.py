from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from event_export.infrastructure import (
    SignedReferenceResolver,
    SupabaseClient,
    SupabaseError,
    parse_storage_reference,
)

BASE = "https://demo.supabase.co"


def _client(handler) -> SupabaseClient:
    transport = httpx.MockTransport(handler)
    http_client = httpx.AsyncClient(transport=transport)
    return SupabaseClient(BASE, "anon-key", http_client=http_client)


def test_query_sends_postgrest_filters_and_headers():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["params"] = list(request.url.params.multi_items())
        captured["apikey"] = request.headers["apikey"]
        captured["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=[{"id": "g1"}, "ignored"])

    client = _client(handler)
    rows = asyncio.run(
        client.query("guests", {"event_id": "e1", "company_id": "c1"}, order="created_at", descending=True)
    )

    assert rows == [{"id": "g1"}]
    assert captured["path"] == "/rest/v1/guests"
    assert captured["params"] == [
        ("select", "*"),
        ("event_id", "eq.e1"),
        ("company_id", "eq.c1"),
        ("order", "created_at.desc"),
    ]
    assert captured["apikey"] == "anon-key"
    assert captured["auth"] == "Bearer anon-key"


def test_query_raises_supabase_error_on_http_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "JWT expired"})

    client = _client(handler)
    with pytest.raises(SupabaseError, match="JWT expired"):
        asyncio.run(client.query("guests", {"event_id": "e1"}))


def test_sign_returns_absolute_url():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(200, json={"signedURL": "/object/sign/media/a.jpg?token=abc"})

    client = _client(handler)
    url = asyncio.run(client.sign("media", "a.jpg", 60))

    assert captured["path"] == "/storage/v1/object/sign/media/a.jpg"
    assert captured["body"] == {"expiresIn": 60}
    assert url == f"{BASE}/storage/v1/object/sign/media/a.jpg?token=abc"


def test_client_requires_absolute_base_url():
    with pytest.raises(ValueError):
        SupabaseClient("demo.supabase.co", "key")


# ----------------------------------------------------------------------
# signed reference resolution
# ----------------------------------------------------------------------
class _SigningStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str, int]] = []

    async def query(self, table, filters, **kwargs):  # pragma: no cover - unused
        return []

    async def sign(self, bucket: str, path: str, ttl_seconds: int) -> str:
        self.calls.append((bucket, path, ttl_seconds))
        if self.fail:
            raise SupabaseError("bucket is private")
        return f"https://signed.example.com/{bucket}/{path}?token=t"

    async def download(self, url: str) -> bytes:  # pragma: no cover - unused
        return b""


def test_parse_storage_reference_recognises_public_and_signed_urls():
    public = parse_storage_reference(f"{BASE}/storage/v1/object/public/chat/2024/photo%201.jpg")
    assert public.bucket == "chat"
    assert public.path == "2024/photo 1.jpg"

    signed = parse_storage_reference(f"{BASE}/storage/v1/object/sign/docs/plan.pdf?token=old")
    assert (signed.bucket, signed.path) == ("docs", "plan.pdf")

    assert parse_storage_reference("https://cdn.example.com/a.jpg") is None


def test_resolver_signs_both_url_shapes_with_sixty_second_ttl():
    store = _SigningStore()
    resolver = SignedReferenceResolver(store)

    first = asyncio.run(resolver.resolve(f"{BASE}/storage/v1/object/public/chat/a.jpg"))
    second = asyncio.run(resolver.resolve(f"{BASE}/storage/v1/object/sign/docs/b.pdf?token=old"))

    assert first == "https://signed.example.com/chat/a.jpg?token=t"
    assert second == "https://signed.example.com/docs/b.pdf?token=t"
    assert store.calls == [("chat", "a.jpg", 60), ("docs", "b.pdf", 60)]


def test_resolver_passes_through_unrecognised_and_failed_references():
    store = _SigningStore(fail=True)
    resolver = SignedReferenceResolver(store)

    external = "https://cdn.example.com/a.jpg"
    stored = f"{BASE}/storage/v1/object/public/chat/a.jpg"
    assert asyncio.run(resolver.resolve(external)) == external
    assert asyncio.run(resolver.resolve(stored)) == stored
    assert store.calls == [("chat", "a.jpg", 60)]


@pytest.mark.parametrize("payload", [["unexpected"], {"signedURL": 123}, {"signedUrl": None}, "text"])
def test_malformed_sign_responses_fall_back_to_the_raw_reference(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = _client(handler)
    with pytest.raises(SupabaseError):
        asyncio.run(client.sign("chat", "a.jpg", 60))

    stored = f"{BASE}/storage/v1/object/public/chat/a.jpg"
    assert asyncio.run(SignedReferenceResolver(client).resolve(stored)) == stored

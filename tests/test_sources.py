from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import httpx

sys.path.append(str(Path(__file__).resolve().parents[1]))

from event_export.domain import CallerIdentity, EventScope
from event_export.extractors import sources
from event_export.infrastructure import SupabaseError

SCOPE = EventScope(event_id="evt-1", event_name="Summit")
CALLER = CallerIdentity(user_id="user-1", company_id="co-1")


def _value(row: dict, key: str):
    node = row
    for part in key.split("."):
        node = node.get(part) if isinstance(node, dict) else None
    return node


class RecordingStore:
    """Answers queries from a table map and remembers every call."""

    def __init__(self, tables: dict[str, list[dict]] | None = None, failing: set[str] | None = None) -> None:
        self.tables = tables or {}
        self.failing = failing or set()
        self.calls: list[tuple[str, dict, dict]] = []

    async def query(self, table, filters, *, select="*", order=None, descending=False):
        self.calls.append((table, dict(filters), {"select": select, "order": order, "descending": descending}))
        if table in self.failing:
            raise SupabaseError(f"{table}: permission denied")
        rows = self.tables.get(table, [])
        return [row for row in rows if all(_value(row, key) == value for key, value in filters.items())]

    async def sign(self, bucket, path, ttl_seconds):  # pragma: no cover - unused
        return path

    async def download(self, url):  # pragma: no cover - unused
        return b""


def test_fetch_filters_by_event_and_company():
    store = RecordingStore(
        {
            "guests": [
                {"id": "g1", "event_id": "evt-1", "company_id": "co-1"},
                {"id": "g2", "event_id": "evt-1", "company_id": "co-2"},
                {"id": "g3", "event_id": "evt-2", "company_id": "co-1"},
            ]
        }
    )
    rows = asyncio.run(sources.fetch("guests", SCOPE, CALLER, store=store))

    assert [row["id"] for row in rows] == ["g1"]
    table, filters, options = store.calls[0]
    assert table == "guests"
    assert filters == {"event_id": "evt-1", "company_id": "co-1"}
    assert options["descending"] is True


def test_fetch_checks_event_ownership_for_unscoped_tables():
    store = RecordingStore(
        {
            "events": [{"id": "evt-1", "company_id": "co-2", "name": "Other"}],
            "timeline_modules": [{"id": "m1", "event_id": "evt-1"}],
        }
    )
    rows = asyncio.run(sources.fetch("timeline-modules", SCOPE, CALLER, store=store))

    assert rows == []
    assert [call[0] for call in store.calls] == ["events"]


def test_fetch_returns_empty_list_on_store_errors():
    store = RecordingStore(failing={"announcements"})
    assert asyncio.run(sources.fetch("announcements", SCOPE, CALLER, store=store)) == []

    class BrokenTransport(RecordingStore):
        async def query(self, table, filters, **kwargs):
            raise httpx.ConnectError("connection refused")

    assert asyncio.run(sources.fetch("guests", SCOPE, CALLER, store=BrokenTransport())) == []


def test_fetch_requires_company_scope():
    store = RecordingStore({"guests": [{"id": "g1", "event_id": "evt-1", "company_id": None}]})
    anonymous = CallerIdentity(user_id="user-1", company_id=None)

    assert asyncio.run(sources.fetch("guests", SCOPE, anonymous, store=store)) == []
    assert store.calls == []
    assert asyncio.run(sources.fetch("unknown-bundle", SCOPE, CALLER, store=store)) == []


def test_module_answers_flatten_joined_rows():
    store = RecordingStore(
        {
            "events": [{"id": "evt-1", "company_id": "co-1", "name": "Summit"}],
            "guest_module_answers": [
                {
                    "id": "a1",
                    "event_id": "evt-1",
                    "answer_text": '{"rating": 4}',
                    "guests": {"first_name": "Ana", "last_name": "Lopez", "email": "ana@example.com", "company_id": "co-1"},
                    "users": None,
                    "timeline_modules": {"module_type": "feedback", "title": "Keynote"},
                }
            ],
        }
    )
    rows = asyncio.run(sources.fetch("module-responses-typed", SCOPE, CALLER, store=store))

    assert rows == [
        {
            "id": "a1",
            "event_id": "evt-1",
            "answer_text": '{"rating": 4}',
            "actor_name": "Ana Lopez",
            "actor_email": "ana@example.com",
            "module_type": "feedback",
            "module_title": "Keynote",
        }
    ]
    table, filters, options = store.calls[-1]
    assert table == "guest_module_answers"
    assert filters == {"event_id": "evt-1", "guests.company_id": "co-1"}
    assert "guests!inner" in options["select"]


def test_chat_media_keeps_only_messages_with_attachments():
    store = RecordingStore(
        {
            "guests_chat_messages": [
                {"message_id": "m1", "event_id": "evt-1", "company_id": "co-1", "message_type": "text"},
                {
                    "message_id": "m2",
                    "event_id": "evt-1",
                    "company_id": "co-1",
                    "message_type": "text",
                    "attachment_url": "https://cdn.example.com/a.jpg",
                },
                {"message_id": "m3", "event_id": "evt-1", "company_id": "co-1", "message_type": "image"},
            ]
        }
    )
    rows = asyncio.run(sources.fetch("chat-media", SCOPE, CALLER, store=store))
    assert [row["id"] for row in rows] == ["m2", "m3"]


def test_report_sources_survive_a_failing_section():
    store = RecordingStore(
        {
            "events": [{"id": "evt-1", "company_id": "co-1", "name": "Summit"}],
            "guests": [{"id": "g1", "event_id": "evt-1", "company_id": "co-1"}],
        },
        failing={"announcements"},
    )
    rows = asyncio.run(sources.fetch("full-data-pdf", SCOPE, CALLER, store=store))

    assert len(rows) == 1
    report = rows[0]
    assert report["event"]["name"] == "Summit"
    assert [row["id"] for row in report["guests"]] == ["g1"]
    assert report["announcements"] == []

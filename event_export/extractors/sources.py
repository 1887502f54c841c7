"""Per-bundle source fetchers.

Every fetcher reads from the data store scoped to one event and to the
caller's company.  Tables that carry a ``company_id`` column are filtered on
it directly; for the rest the event itself must belong to the caller's
company before anything is returned.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

import httpx

from event_export.domain import CallerIdentity, EventScope, SourceRecord
from event_export.infrastructure import DataStore, SupabaseError, get_data_store

logger = logging.getLogger(__name__)

Fetcher = Callable[[DataStore, EventScope, CallerIdentity], Awaitable[list[SourceRecord]]]

MEDIA_MESSAGE_TYPES = {"image", "video", "file", "attachment"}


class TenantMismatch(SupabaseError):
    """Raised when the event does not belong to the caller's company."""


async def _scoped(
    store: DataStore,
    table: str,
    scope: EventScope,
    caller: CallerIdentity,
    *,
    order: str = "created_at",
    descending: bool = False,
) -> list[SourceRecord]:
    filters = {"event_id": scope.event_id, "company_id": caller.company_id}
    return await store.query(table, filters, order=order, descending=descending)


async def _ensure_event_owned(store: DataStore, scope: EventScope, caller: CallerIdentity) -> SourceRecord:
    rows = await store.query("events", {"id": scope.event_id, "company_id": caller.company_id})
    if not rows:
        raise TenantMismatch(f"event {scope.event_id} not found for company {caller.company_id}")
    return rows[0]


async def fetch_event(store: DataStore, scope: EventScope, caller: CallerIdentity) -> SourceRecord:
    return await _ensure_event_owned(store, scope, caller)


async def _fetch_guests(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "guests", scope, caller, descending=True)


async def _fetch_itineraries(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "itineraries", scope, caller)


async def _fetch_homepage(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "homepage_builder", scope, caller)


async def _fetch_timeline_modules(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    await _ensure_event_owned(store, scope, caller)
    return await store.query("timeline_modules", {"event_id": scope.event_id}, order="created_at")


async def _fetch_chat(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    rows = await _scoped(store, "guests_chat_messages", scope, caller)
    messages: list[SourceRecord] = []
    for row in rows:
        message = dict(row)
        message.setdefault("id", row.get("message_id"))
        messages.append(message)
    return messages


async def _fetch_chat_media(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    messages = await _fetch_chat(store, scope, caller)
    return [
        message
        for message in messages
        if message.get("attachment_url") or str(message.get("message_type") or "").lower() in MEDIA_MESSAGE_TYPES
    ]


async def _fetch_addon_usage(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "addon_usage", scope, caller, descending=True)


def _flatten_answer(row: SourceRecord) -> SourceRecord:
    guest = row.get("guests") or {}
    user = row.get("users") or {}
    module = row.get("timeline_modules") or {}
    guest_name = f"{guest.get('first_name') or ''} {guest.get('last_name') or ''}".strip()
    flattened = {key: value for key, value in row.items() if key not in {"guests", "users", "timeline_modules"}}
    flattened["actor_name"] = user.get("name") or guest_name
    flattened["actor_email"] = user.get("email") or guest.get("email") or ""
    if module:
        flattened["module_type"] = module.get("module_type")
        flattened["module_title"] = module.get("title") or module.get("question")
    return flattened


async def _fetch_module_answers(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    rows = await store.query(
        "guest_module_answers",
        {"event_id": scope.event_id, "guests.company_id": caller.company_id},
        select=(
            "*,guests!inner(first_name,last_name,email,company_id),users!left(name,email),"
            "timeline_modules!left(module_type,title,question)"
        ),
        order="created_at",
        descending=True,
    )
    return [_flatten_answer(row) for row in rows]


async def _fetch_activity(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "activity_log", scope, caller, descending=True)


async def _fetch_activity_feed(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    rows = await store.query(
        "activity_log",
        {"event_id": scope.event_id, "company_id": caller.company_id},
        select="*,users!left(name,email)",
        order="created_at",
        descending=True,
    )
    feed: list[SourceRecord] = []
    for row in rows:
        item = dict(row)
        user = row.get("users") or {}
        item["actor_name"] = user.get("name") or user.get("email") or row.get("user_id") or "System"
        feed.append(item)
    return feed


async def _fetch_announcements(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    return await _scoped(store, "announcements", scope, caller, descending=True)


async def _fetch_report_sources(store: DataStore, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
    """Gather every section of the analytics report into one record."""

    event = await _ensure_event_owned(store, scope, caller)
    sections: dict[str, Fetcher] = {
        "messages": _fetch_chat,
        "guests": _fetch_guests,
        "modules": _fetch_timeline_modules,
        "responses": _fetch_module_answers,
        "announcements": _fetch_announcements,
        "itineraries": _fetch_itineraries,
        "activity": _fetch_activity,
    }
    report: SourceRecord = {"event": event}
    found = 0
    for name, fetcher in sections.items():
        try:
            rows = await fetcher(store, scope, caller)
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.warning("report section %s unavailable for event %s: %s", name, scope.event_id, exc)
            rows = []
        report[name] = rows
        found += len(rows)
    return [report] if found else []


FETCHERS: dict[str, Fetcher] = {
    "homepage-builder": _fetch_homepage,
    "timeline-modules": _fetch_timeline_modules,
    "itineraries": _fetch_itineraries,
    "guests": _fetch_guests,
    "guest-chat": _fetch_chat,
    "chat-media": _fetch_chat_media,
    "addon-usage": _fetch_addon_usage,
    "module-responses": _fetch_module_answers,
    "module-media": _fetch_module_answers,
    "module-responses-typed": _fetch_module_answers,
    "activity-log": _fetch_activity,
    "announcements": _fetch_announcements,
    "announcements-media": _fetch_announcements,
    "itinerary-documents": _fetch_itineraries,
    "event-activity-feed": _fetch_activity_feed,
    "full-data-pdf": _fetch_report_sources,
}


async def fetch(
    bundle_id: str,
    scope: EventScope,
    caller: CallerIdentity,
    *,
    store: DataStore | None = None,
) -> list[SourceRecord]:
    """Fetch the source records for ``bundle_id``.

    Transport and permission errors are logged and reported as an empty list so
    the caller can decide whether to substitute placeholder data.
    """

    fetcher = FETCHERS.get(bundle_id)
    if fetcher is None:
        logger.warning("no fetcher registered for bundle %s", bundle_id)
        return []
    if not scope.event_id or not caller.company_id:
        logger.warning("refusing to fetch %s without an event and company scope", bundle_id)
        return []

    data_store = store or get_data_store()
    try:
        records = await fetcher(data_store, scope, caller)
    except (SupabaseError, httpx.HTTPError) as exc:
        logger.warning("fetching %s for event %s failed: %s", bundle_id, scope.event_id, exc)
        return []
    logger.info("fetched %d records for %s", len(records), bundle_id)
    return list(records)


def registered_bundles() -> list[str]:
    return list(FETCHERS)

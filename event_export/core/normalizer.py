from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Sequence

from event_export.core.catalog import BundleDescriptor, ColumnSpec
from event_export.core.responses import decode_response, flatten_response
from event_export.domain import SourceRecord

_MISSING = object()

ACTION_LABELS: dict[str, str] = {
    "guest_created": "Added a guest",
    "guest_registered": "Guest registered",
    "guest_updated": "Updated a guest",
    "guest_deleted": "Removed a guest",
    "itinerary_created": "Created an itinerary",
    "itinerary_updated": "Updated an itinerary",
    "itinerary_deleted": "Deleted an itinerary",
    "module_created": "Created a timeline module",
    "module_response": "Submitted a module response",
    "announcement_created": "Created an announcement",
    "announcement_sent": "Sent an announcement",
    "homepage_updated": "Updated the event homepage",
    "event_updated": "Updated event details",
    "chat_message": "Sent a chat message",
}


def _lookup(record: Mapping[str, Any], key: str) -> Any:
    if key in record:
        return record[key]
    if "." not in key:
        return _MISSING
    node: Any = record
    for part in key.split("."):
        if isinstance(node, Mapping) and part in node:
            node = node[part]
        else:
            return _MISSING
    return node


def resolve_field(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    """Return the first present, non-None value among ``keys``.

    Dotted keys walk nested mappings, so ``guests.email`` reads the joined guest
    row. ``None`` is returned when no candidate matches.
    """

    for key in keys:
        value = _lookup(record, key)
        if value is _MISSING or value is None:
            continue
        return value
    return None


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def normalize_row(columns: Sequence[ColumnSpec], record: Mapping[str, Any]) -> list[str]:
    """Produce exactly one cell per declared column."""

    return [format_cell(resolve_field(record, column.keys)) for column in columns]


def _enrich_typed_response(record: SourceRecord) -> SourceRecord:
    module_type = resolve_field(record, ("module_type", "timeline_modules.module_type", "moduleType"))
    answer = resolve_field(record, ("answer_text", "answerText", "answer"))
    enriched = dict(record)
    if module_type is not None:
        enriched.setdefault("module_type", module_type)
    enriched.update(flatten_response(decode_response(module_type, answer)))
    return enriched


def _enrich_activity(record: SourceRecord) -> SourceRecord:
    action = resolve_field(record, ("action", "action_type"))
    if action is None:
        return record
    enriched = dict(record)
    label = ACTION_LABELS.get(str(action))
    enriched["action_label"] = label or str(action).replace("_", " ").capitalize()
    return enriched


RECORD_ENRICHERS: dict[str, Callable[[SourceRecord], SourceRecord]] = {
    "module-responses-typed": _enrich_typed_response,
    "event-activity-feed": _enrich_activity,
}


def normalize_records(bundle: BundleDescriptor, records: Iterable[SourceRecord]) -> list[list[str]]:
    enrich = RECORD_ENRICHERS.get(bundle.id)
    rows: list[list[str]] = []
    for record in records:
        if not isinstance(record, Mapping):
            record = {}
        if enrich is not None:
            record = enrich(dict(record))
        rows.append(normalize_row(bundle.columns, record))
    return rows

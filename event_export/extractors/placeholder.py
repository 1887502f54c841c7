"""Deterministic sample records used when a bundle's fetch yields nothing.

The export console was built to always hand back a populated file, even for
events that have no data yet.  That behaviour is kept as an explicit policy so
production deployments can switch it off with ``EXPORT_PLACEHOLDER_DATA=0``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from event_export.core.catalog import BundleDescriptor
from event_export.domain import EventScope, SourceRecord

SAMPLE_TIMESTAMP = "2024-01-15T09:00:00+00:00"
SAMPLE_TIMESTAMP_LATER = "2024-01-15T10:00:00+00:00"
SAMPLE_TIMESTAMP_NEXT_DAY = "2024-01-16T09:30:00+00:00"


def _base(scope: EventScope, record_id: str, created_at: str = SAMPLE_TIMESTAMP) -> dict[str, Any]:
    return {
        "id": record_id,
        "event_id": scope.event_id or "test-event",
        "created_at": created_at,
        "updated_at": created_at,
    }


def _guests(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "first_name": "John",
            "last_name": "Doe",
            "email": "john.doe@example.com",
            "contact_number": "+1234567890",
            "country_code": "US",
            "id_type": "passport",
            "id_number": "P123456789",
            "dietary_requirements": "Vegetarian",
            "medical_information": "None",
            "group_id": "group-1",
            "group_name": "VIP Guests",
        },
        {
            **_base(scope, "test-2"),
            "first_name": "Jane",
            "last_name": "Smith",
            "email": "jane.smith@example.com",
            "contact_number": "+1987654321",
            "country_code": "UK",
            "id_type": "drivers_license",
            "id_number": "DL987654321",
            "dietary_requirements": "Gluten-free",
            "medical_information": "Allergic to nuts",
            "group_id": "group-2",
            "group_name": "Standard Guests",
        },
    ]


def _itineraries(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "title": "Day 1 - Arrival",
            "description": "Welcome and registration",
            "date": "2024-01-15",
            "arrival_time": "09:00",
            "start_time": "10:00",
            "end_time": "18:00",
            "location": "Main Conference Center",
            "is_draft": False,
            "group_id": "group-1",
            "group_name": "All Guests",
        },
        {
            **_base(scope, "test-2"),
            "title": "Day 2 - Main Event",
            "description": "Main conference day",
            "date": "2024-01-16",
            "arrival_time": "08:30",
            "start_time": "09:00",
            "end_time": "17:00",
            "location": "Grand Hall",
            "is_draft": False,
            "group_id": "group-1",
            "group_name": "All Guests",
        },
    ]


def _chat(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "sender_name": "John Doe",
            "sender_email": "john.doe@example.com",
            "message_text": "Hello! I have a question about the event.",
            "message_type": "text",
        },
        {
            **_base(scope, "test-2", SAMPLE_TIMESTAMP_LATER),
            "sender_name": "Event Host",
            "sender_email": "host@example.com",
            "message_text": "Hi! Of course, I'd be happy to help. What would you like to know?",
            "message_type": "text",
        },
    ]


def _modules(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "module-1"),
            "title": "How was the welcome session?",
            "module_type": "feedback",
            "time": "10:30",
        },
        {
            **_base(scope, "module-2"),
            "title": "Which workshop will you attend?",
            "module_type": "multiple_choice",
            "time": "12:00",
        },
    ]


def _answers(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "module_id": "module-1",
            "module_type": "feedback",
            "module_title": "How was the welcome session?",
            "guest_id": "test-1",
            "actor_name": "John Doe",
            "actor_email": "john.doe@example.com",
            "answer_text": '{"rating": 5, "comment": "I really enjoyed the welcome session!"}',
        },
        {
            **_base(scope, "test-2", SAMPLE_TIMESTAMP_LATER),
            "module_id": "module-2",
            "module_type": "multiple_choice",
            "module_title": "Which workshop will you attend?",
            "guest_id": "test-2",
            "actor_name": "Jane Smith",
            "actor_email": "jane.smith@example.com",
            "answer_text": "Option 2",
        },
    ]


def _announcements(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "title": "Welcome Announcement",
            "description": "Welcome to our amazing event!",
            "scheduled_at": SAMPLE_TIMESTAMP,
            "sent_at": SAMPLE_TIMESTAMP,
        },
        {
            **_base(scope, "test-2", SAMPLE_TIMESTAMP_LATER),
            "title": "Schedule Update",
            "description": "The afternoon session has been moved to 2 PM",
            "scheduled_at": SAMPLE_TIMESTAMP_LATER,
            "sent_at": SAMPLE_TIMESTAMP_LATER,
        },
    ]


def _activity(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "action": "guest_registered",
            "user_id": "guest-1",
            "actor_name": "John Doe",
            "summary": "Guest registered for event",
        },
        {
            **_base(scope, "test-2", SAMPLE_TIMESTAMP_NEXT_DAY),
            "action": "itinerary_created",
            "user_id": "admin-1",
            "actor_name": "Admin User",
            "summary": "Created new itinerary",
        },
    ]


def _homepage(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "configuration_type": "header",
            "content": "Welcome to our event!",
            "settings": {"theme": "dark", "layout": "modern"},
        },
        {
            **_base(scope, "test-2"),
            "configuration_type": "content",
            "content": "Event details and information",
            "settings": {"position": "center", "style": "card"},
        },
    ]


def _addon_usage(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            **_base(scope, "test-1"),
            "addon_id": "offline-maps",
            "user_id": "guest-1",
            "feature": "map_download",
            "usage_count": 3,
            "total_time_ms": 45000,
            "last_used": SAMPLE_TIMESTAMP,
        },
        {
            **_base(scope, "test-2"),
            "addon_id": "translator",
            "user_id": "guest-2",
            "feature": "translate_text",
            "usage_count": 12,
            "total_time_ms": 120000,
            "last_used": SAMPLE_TIMESTAMP_LATER,
        },
    ]


def _report(scope: EventScope) -> list[SourceRecord]:
    return [
        {
            "event": {"id": scope.event_id, "name": scope.event_name},
            "messages": _chat(scope),
            "guests": _guests(scope),
            "modules": _modules(scope),
            "responses": _answers(scope),
            "announcements": _announcements(scope),
            "itineraries": _itineraries(scope),
            "activity": _activity(scope),
        }
    ]


_SAMPLES = {
    "homepage-builder": _homepage,
    "timeline-modules": _modules,
    "itineraries": _itineraries,
    "guests": _guests,
    "guest-chat": _chat,
    "addon-usage": _addon_usage,
    "module-responses": _answers,
    "module-responses-typed": _answers,
    "activity-log": _activity,
    "announcements": _announcements,
    "event-activity-feed": _activity,
    "full-data-pdf": _report,
}


@dataclass(frozen=True, slots=True)
class PlaceholderDataPolicy:
    """Substitutes sample records when a real fetch produced none."""

    enabled: bool = True

    def records_for(self, bundle: BundleDescriptor, scope: EventScope) -> list[SourceRecord]:
        # archives need real bytes, so they never get placeholder media
        if not self.enabled or bundle.output_kind == "archive":
            return []
        factory = _SAMPLES.get(bundle.id)
        if factory is None:
            return [_base(scope, "test-1")]
        return factory(scope)


DISABLED = PlaceholderDataPolicy(enabled=False)

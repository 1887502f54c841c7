from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from event_export.domain import OutputKind

EXTENSIONS: dict[str, str] = {
    "tabular": "csv",
    "archive": "zip",
    "report": "pdf",
}

MEDIA_TYPES: dict[str, str] = {
    "tabular": "text/csv",
    "archive": "application/zip",
    "report": "application/pdf",
}


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """One CSV column: its header and the record keys that may hold its value."""

    header: str
    keys: tuple[str, ...]


def _col(header: str, *keys: str) -> ColumnSpec:
    return ColumnSpec(header=header, keys=tuple(keys))


@dataclass(frozen=True, slots=True)
class BundleDescriptor:
    id: str
    name: str
    description: str
    output_kind: OutputKind
    category: str
    size_estimate: str
    includes: tuple[str, ...] = ()
    columns: tuple[ColumnSpec, ...] = field(default=())

    @property
    def extension(self) -> str:
        return EXTENSIONS[self.output_kind]

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES[self.output_kind]

    @property
    def headers(self) -> list[str]:
        return [column.header for column in self.columns]

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "output_kind": self.output_kind,
            "extension": self.extension,
            "category": self.category,
            "size_estimate": self.size_estimate,
            "includes": list(self.includes),
            "columns": self.headers,
        }


_ID = _col("ID", "id", "message_id")
_EVENT_ID = _col("Event ID", "event_id", "eventId")
_COMPANY_ID = _col("Company ID", "company_id", "companyId")
_CREATED_AT = _col("Created At", "created_at", "createdAt", "timestamp")
_UPDATED_AT = _col("Updated At", "updated_at", "updatedAt")
_CREATED_BY = _col("Created By", "created_by", "createdBy")

BUNDLES: tuple[BundleDescriptor, ...] = (
    BundleDescriptor(
        id="homepage-builder",
        name="Homepage Builder Data",
        description="All homepage builder configurations and content for the event",
        output_kind="tabular",
        category="Core Data",
        size_estimate="~20KB",
        includes=("Homepage Configuration", "Content Blocks", "Layout Settings", "Custom Styling"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Configuration Type", "configuration_type", "configurationType", "block_type"),
            _col("Content", "content", "body"),
            _col("Settings", "settings", "config"),
            _CREATED_AT,
            _UPDATED_AT,
        ),
    ),
    BundleDescriptor(
        id="timeline-modules",
        name="Timeline Module Data",
        description="All timeline modules and their configurations",
        output_kind="tabular",
        category="Core Data",
        size_estimate="~30KB",
        includes=("Module Configurations", "Timeline Settings", "Content Data", "Module Types"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Title", "title", "question"),
            _col("Description", "description", "content"),
            _col("Type", "module_type", "moduleType", "type"),
            _col("Time", "time", "scheduled_time"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="itineraries",
        name="Itinerary Data",
        description="All event itineraries with timing, locations, and details",
        output_kind="tabular",
        category="Core Data",
        size_estimate="~50KB",
        includes=("Event Schedule", "Location Details", "Timing Information", "Group Assignments"),
        columns=(
            _ID,
            _EVENT_ID,
            _COMPANY_ID,
            _col("Title", "title"),
            _col("Description", "description"),
            _col("Date", "date"),
            _col("Arrival Time", "arrival_time", "arrivalTime"),
            _col("Start Time", "start_time", "startTime"),
            _col("End Time", "end_time", "endTime"),
            _col("Location", "location"),
            _col("Group ID", "group_id", "groupId"),
            _col("Group Name", "group_name", "groupName"),
            _col("Document", "document_file_name", "documentFileName"),
            _col("Is Draft", "is_draft", "isDraft"),
            _CREATED_AT,
            _UPDATED_AT,
            _CREATED_BY,
        ),
    ),
    BundleDescriptor(
        id="guests",
        name="Guest Data",
        description="Complete guest information and details",
        output_kind="tabular",
        category="Core Data",
        size_estimate="~100KB",
        includes=("Guest Information", "Contact Details", "Group Assignments", "Special Requirements"),
        columns=(
            _ID,
            _EVENT_ID,
            _COMPANY_ID,
            _col("First Name", "first_name", "firstName"),
            _col("Middle Name", "middle_name", "middleName"),
            _col("Last Name", "last_name", "lastName"),
            _col("Email", "email"),
            _col("Contact Number", "contact_number", "contactNumber"),
            _col("Country Code", "country_code", "countryCode"),
            _col("ID Type", "id_type", "idType"),
            _col("ID Number", "id_number", "idNumber"),
            _col("ID Country", "id_country", "idCountry"),
            _col("Date of Birth", "dob", "date_of_birth", "dateOfBirth"),
            _col("Gender", "gender"),
            _col("Group ID", "group_id", "groupId"),
            _col("Group Name", "group_name", "groupName"),
            _col("Next of Kin Name", "next_of_kin_name", "nextOfKinName"),
            _col("Next of Kin Email", "next_of_kin_email", "nextOfKinEmail"),
            _col("Next of Kin Phone Country", "next_of_kin_phone_country", "nextOfKinPhoneCountry"),
            _col("Next of Kin Phone", "next_of_kin_phone", "nextOfKinPhone"),
            _col("Dietary", "dietary", "dietary_requirements", "dietaryRequirements"),
            _col("Medical", "medical", "medical_information", "medicalInformation"),
            _col("Modules", "modules"),
            _col("Module Values", "module_values", "moduleValues"),
            _col("Prefix", "prefix"),
            _col("Status", "status"),
            _CREATED_AT,
            _UPDATED_AT,
            _CREATED_BY,
        ),
    ),
    BundleDescriptor(
        id="guest-chat",
        name="Guest Chat (CSV)",
        description="Complete chat conversations between guests and hosts",
        output_kind="tabular",
        category="Communication",
        size_estimate="~200KB",
        includes=("Message History", "Timestamps", "Sender Info"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Sender Name", "sender_name", "senderName", "sender_id"),
            _col("Sender Email", "sender_email", "senderEmail"),
            _col("Message", "message_text", "messageText", "message"),
            _col("Message Type", "message_type", "messageType"),
            _col("Attachment URL", "attachment_url", "attachmentUrl"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="chat-media",
        name="Guest Chat Media (ZIP)",
        description="All images and videos shared in guest chat",
        output_kind="archive",
        category="Communication",
        size_estimate="~varies",
        includes=("Images", "Videos"),
    ),
    BundleDescriptor(
        id="addon-usage",
        name="Add-on Usage Analytics",
        description="Detailed usage statistics for all event add-ons",
        output_kind="tabular",
        category="Analytics",
        size_estimate="~25KB",
        includes=("Feature Usage", "User Engagement", "Time Spent", "Popular Features"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Addon ID", "addon_id", "addonId"),
            _col("User ID", "user_id", "userId"),
            _col("Feature", "feature"),
            _col("Usage Count", "usage_count", "usageCount"),
            _col("Total Time (ms)", "total_time_ms", "totalTimeMs"),
            _col("Last Used", "last_used", "lastUsed"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="module-responses",
        name="Module Responses (CSV)",
        description="All guest responses to timeline modules and interactive content",
        output_kind="tabular",
        category="Guest Data",
        size_estimate="~150KB",
        includes=("Question", "Feedback", "Multiple Choice", "Photo/Video metadata"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Module ID", "module_id", "moduleId"),
            _col("Guest ID", "guest_id", "guestId"),
            _col("Actor Name", "actor_name", "guest_name", "guestName"),
            _col("Actor Email", "actor_email", "guest_email", "guestEmail"),
            _col("Answer Text", "answer_text", "answerText"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="module-media",
        name="Module Media (ZIP)",
        description="All photos and videos uploaded in Module responses",
        output_kind="archive",
        category="Guest Data",
        size_estimate="~varies",
        includes=("Photos", "Videos"),
    ),
    BundleDescriptor(
        id="module-responses-typed",
        name="Module Responses (Typed CSV)",
        description="Structured responses with per-type fields (rating, option, media)",
        output_kind="tabular",
        category="Guest Data",
        size_estimate="~180KB",
        includes=("Module Type", "Title/Question", "Rating", "Comment", "Selected Option", "Media URL/Type"),
        columns=(
            _ID,
            _EVENT_ID,
            _col("Module ID", "module_id", "moduleId"),
            _col("Module Type", "module_type", "moduleType"),
            _col("Title/Question", "module_title", "title", "question"),
            _col("Actor Name", "actor_name", "guest_name"),
            _col("Actor Email", "actor_email", "guest_email"),
            _col("Response Kind", "response_kind"),
            _col("Rating", "rating"),
            _col("Comment", "comment"),
            _col("Selected Option", "selected_option"),
            _col("Answer Text", "response_text"),
            _col("Media URL", "media_url"),
            _col("Media Type", "media_type"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="activity-log",
        name="Activity Log (CSV)",
        description="Event-specific activity feed for audit trail",
        output_kind="tabular",
        category="Core Data",
        size_estimate="~50KB",
        includes=("Action type", "Actor", "Timestamp"),
        columns=(
            _ID,
            _EVENT_ID,
            _COMPANY_ID,
            _col("User ID", "user_id", "actor_id"),
            _col("Action", "action", "action_type"),
            _col("Summary", "summary", "details"),
            _col("Meta", "meta"),
            _CREATED_AT,
        ),
    ),
    BundleDescriptor(
        id="announcements",
        name="Announcements (CSV)",
        description="All announcements created for the event",
        output_kind="tabular",
        category="Communication",
        size_estimate="~30KB",
        includes=("Title", "Description", "Scheduled/ Sent"),
        columns=(
            _ID,
            _EVENT_ID,
            _COMPANY_ID,
            _col("Title", "title"),
            _col("Description", "description", "message"),
            _col("Image URL", "image_url", "imageUrl"),
            _col("Link URL", "link_url", "linkUrl"),
            _col("Scheduled At", "scheduled_at", "scheduled_for", "scheduledFor"),
            _col("Sent At", "sent_at", "sentAt"),
            _CREATED_AT,
            _CREATED_BY,
        ),
    ),
    BundleDescriptor(
        id="announcements-media",
        name="Announcements Media (ZIP)",
        description="All media used within announcements",
        output_kind="archive",
        category="Communication",
        size_estimate="~varies",
        includes=("Images", "Videos"),
    ),
    BundleDescriptor(
        id="itinerary-documents",
        name="Itinerary Documents (ZIP)",
        description="All documents uploaded to itineraries",
        output_kind="archive",
        category="Core Data",
        size_estimate="~varies",
        includes=("PDF", "Images", "Docs"),
    ),
    BundleDescriptor(
        id="event-activity-feed",
        name="Event Activity Feed (CSV)",
        description="Event Dashboard activity with friendly labels (what users see)",
        output_kind="tabular",
        category="Analytics",
        size_estimate="~40KB",
        includes=("Actor", "Action", "Timestamp"),
        columns=(
            _col("Actor", "actor_name", "users.name", "user_name", "user_id"),
            _col("Action", "action_label", "action", "action_type"),
            _col("Summary", "summary", "details"),
            _col("Timestamp", "created_at", "timestamp"),
        ),
    ),
    BundleDescriptor(
        id="full-data-pdf",
        name="Full Data Export (PDF)",
        description="Multi-page analytics PDF summarising all event data",
        output_kind="report",
        category="Analytics",
        size_estimate="~0.5-2MB",
        includes=(
            "Cover page",
            "Key metrics",
            "Messages per day",
            "Module breakdown",
            "Feedback insights",
            "Top participants",
        ),
    ),
)

_BY_ID: dict[str, BundleDescriptor] = {bundle.id: bundle for bundle in BUNDLES}


def list_bundles() -> list[BundleDescriptor]:
    return list(BUNDLES)


def get_bundle(bundle_id: str) -> BundleDescriptor | None:
    return _BY_ID.get(bundle_id)


def select_bundles(bundle_ids: Iterable[str]) -> list[BundleDescriptor]:
    """Return the catalog entries for ``bundle_ids`` in request order.

    Unknown ids are ignored and repeated ids collapse to their first position.
    """

    selected: list[BundleDescriptor] = []
    seen: set[str] = set()
    for bundle_id in bundle_ids:
        bundle = _BY_ID.get(str(bundle_id))
        if bundle is None or bundle.id in seen:
            continue
        seen.add(bundle.id)
        selected.append(bundle)
    return selected

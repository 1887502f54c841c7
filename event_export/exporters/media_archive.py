"""ZIP archives of media referenced by event records."""
from __future__ import annotations

import io
import logging
import mimetypes
import posixpath
import zipfile
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator
from urllib.parse import unquote, urlparse

import httpx

from event_export.core.catalog import BundleDescriptor
from event_export.core.responses import MediaResponse, decode_response
from event_export.domain import Artifact, SourceRecord
from event_export.infrastructure import SignedReferenceResolver, SupabaseError

logger = logging.getLogger(__name__)

Downloader = Callable[[str], Awaitable[bytes]]

CHAT_MEDIA_TYPES = {"image", "video", "file", "attachment"}
DOCUMENT_EXTENSIONS = {".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".txt", ".csv"}


class EmptyArchive:
    """Sentinel returned when no file could be added to an archive."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "EMPTY_ARCHIVE"


EMPTY_ARCHIVE = EmptyArchive()


@dataclass(frozen=True, slots=True)
class MediaReference:
    url: str
    record_id: str
    media_type: str = ""
    filename: str | None = None


def _is_url(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith(("http://", "https://"))


def _chat_references(record: SourceRecord) -> Iterator[MediaReference]:
    record_id = str(record.get("id") or record.get("message_id") or "message")
    url = record.get("attachment_url") or record.get("image_url")
    message_type = str(record.get("message_type") or "").lower()
    if not url and message_type in CHAT_MEDIA_TYPES and _is_url(record.get("message_text")):
        url = record["message_text"]
    if _is_url(url):
        yield MediaReference(
            url=url.strip(),
            record_id=record_id,
            media_type=str(record.get("attachment_type") or message_type or ""),
            filename=record.get("attachment_filename"),
        )


def _module_references(record: SourceRecord) -> Iterator[MediaReference]:
    response = decode_response(record.get("module_type"), record.get("answer_text"))
    if isinstance(response, MediaResponse) and _is_url(response.url):
        yield MediaReference(
            url=response.url,
            record_id=str(record.get("id") or "response"),
            media_type=response.media_type,
        )


def _announcement_references(record: SourceRecord) -> Iterator[MediaReference]:
    record_id = str(record.get("id") or "announcement")
    for key in ("image_url", "media_url", "video_url"):
        if _is_url(record.get(key)):
            yield MediaReference(url=record[key].strip(), record_id=record_id)


def _itinerary_references(record: SourceRecord) -> Iterator[MediaReference]:
    record_id = str(record.get("id") or "itinerary")
    for key in ("document_url", "document_file_url", "document_file_name"):
        value = record.get(key)
        if _is_url(value):
            yield MediaReference(url=value.strip(), record_id=record_id)
            return


REFERENCE_EXTRACTORS: dict[str, Callable[[SourceRecord], Iterator[MediaReference]]] = {
    "chat-media": _chat_references,
    "module-media": _module_references,
    "announcements-media": _announcement_references,
    "itinerary-documents": _itinerary_references,
}


def collect_references(bundle: BundleDescriptor, records: Iterable[SourceRecord]) -> list[MediaReference]:
    extractor = REFERENCE_EXTRACTORS.get(bundle.id)
    if extractor is None:
        return []
    references: list[MediaReference] = []
    for record in records:
        if isinstance(record, dict):
            references.extend(extractor(record))
    return references


def media_category(reference: MediaReference) -> str:
    """Folder inside the archive for ``reference``."""

    kind = reference.media_type.lower()
    guessed, _ = mimetypes.guess_type(urlparse(reference.url).path)
    guessed = (guessed or "").lower()
    if kind.startswith("image") or guessed.startswith("image"):
        return "images"
    if kind.startswith("video") or guessed.startswith("video"):
        return "videos"
    extension = posixpath.splitext(urlparse(reference.url).path)[1].lower()
    if extension in DOCUMENT_EXTENSIONS or guessed.startswith(("application/pdf", "text/")):
        return "documents"
    return "files"


def derive_filename(reference: MediaReference) -> str:
    if reference.filename:
        return posixpath.basename(str(reference.filename)) or reference.record_id
    name = posixpath.basename(unquote(urlparse(reference.url).path))
    if name and "." in name:
        return name
    extension = mimetypes.guess_extension(reference.media_type) if "/" in reference.media_type else None
    if extension is None:
        extension = {"image": ".jpg", "video": ".mp4"}.get(reference.media_type.lower(), ".bin")
    return f"{name or reference.record_id}{extension}"


def _unique_path(path: str, taken: set[str]) -> str:
    if path not in taken:
        return path
    stem, extension = posixpath.splitext(path)
    counter = 1
    while f"{stem}-{counter}{extension}" in taken:
        counter += 1
    return f"{stem}-{counter}{extension}"


async def encode_archive(
    bundle: BundleDescriptor,
    records: Iterable[SourceRecord],
    resolver: SignedReferenceResolver,
    download: Downloader,
    *,
    filename: str | None = None,
) -> Artifact | EmptyArchive:
    """Download every referenced file into a ZIP.

    Individual download failures are skipped. When nothing could be added the
    :data:`EMPTY_ARCHIVE` sentinel is returned instead of an empty container.
    """

    references = collect_references(bundle, records)
    buffer = io.BytesIO()
    taken: set[str] = set()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for reference in references:
            url = await resolver.resolve(reference.url)
            try:
                payload = await download(url)
            except (SupabaseError, httpx.HTTPError) as exc:
                logger.warning("skipping %s for %s: %s", reference.url, bundle.id, exc)
                continue
            arcname = _unique_path(f"{media_category(reference)}/{derive_filename(reference)}", taken)
            taken.add(arcname)
            archive.writestr(arcname, payload)

    if not taken:
        logger.info("no files collected for %s (%d references)", bundle.id, len(references))
        return EMPTY_ARCHIVE

    return Artifact(
        content=buffer.getvalue(),
        filename=filename or f"{bundle.id}.{bundle.extension}",
        media_type=bundle.media_type,
        output_kind=bundle.output_kind,
    )

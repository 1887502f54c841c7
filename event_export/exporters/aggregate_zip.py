from __future__ import annotations

import io
import re
import zipfile
from datetime import date
from typing import Iterable

from event_export.core.catalog import get_bundle
from event_export.domain import Artifact, EventScope, ExportJob

_UNSAFE = re.compile(r'[\\/:*?"<>|]+')


class NothingToAggregate(RuntimeError):
    """Raised when no completed export is available for the combined archive."""


def safe_name(value: str, fallback: str = "export") -> str:
    cleaned = _UNSAFE.sub("_", str(value or "")).strip()
    return cleaned or fallback


def bundle_filename(bundle_id: str, extension: str, today: date | None = None) -> str:
    return f"{bundle_id}-{(today or date.today()).isoformat()}.{extension}"


def aggregate_filename(event_name: str, today: date | None = None) -> str:
    return f"{safe_name(event_name, 'event')}_export_{(today or date.today()).isoformat()}.zip"


def aggregate(jobs: Iterable[ExportJob], scope: EventScope, *, today: date | None = None) -> Artifact:
    """Combine the artifacts of every completed job into one ZIP."""

    completed = [job for job in jobs if job.status == "completed" and job.artifact is not None]
    if not completed:
        raise NothingToAggregate("No completed exports to download")

    buffer = io.BytesIO()
    taken: set[str] = set()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for job in completed:
            bundle = get_bundle(job.bundle_id)
            name = safe_name(bundle.name if bundle else job.bundle_id)
            extension = bundle.extension if bundle else job.artifact.filename.rsplit(".", 1)[-1]
            entry = f"{name}.{extension}"
            if entry in taken:
                entry = f"{name}-{job.job_id}.{extension}"
            taken.add(entry)
            archive.writestr(entry, job.artifact.content)

    return Artifact(
        content=buffer.getvalue(),
        filename=aggregate_filename(scope.event_name, today),
        media_type="application/zip",
        output_kind="archive",
    )

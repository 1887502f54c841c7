"""Domain entities for export sessions."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

OutputKind = Literal["tabular", "archive", "report"]
JobStatus = Literal["pending", "processing", "completed", "failed"]

SourceRecord = dict[str, Any]

INITIAL_PROGRESS = 10
FETCHED_PROGRESS = 30
PREPARED_PROGRESS = 70

_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "failed"}),
    "processing": frozenset({"completed", "failed"}),
    "completed": frozenset(),
    "failed": frozenset(),
}


class InvalidTransition(RuntimeError):
    """Raised when a job is moved against the forward-only state machine."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Artifact:
    """Binary output of a completed export job."""

    content: bytes
    filename: str
    media_type: str
    output_kind: OutputKind

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True, slots=True)
class EventScope:
    """Identifies the single event an export is scoped to."""

    event_id: str
    event_name: str = "event"


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """The staff member requesting the export and their tenant."""

    user_id: str | None = None
    company_id: str | None = None


@dataclass(slots=True)
class ExportJob:
    """Runtime state for exporting one bundle in one invocation."""

    job_id: str
    bundle_id: str
    status: JobStatus = "pending"
    progress: int = 0
    artifact: Artifact | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def _move(self, target: JobStatus) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise InvalidTransition(f"job {self.job_id} cannot move from {self.status} to {target}")
        self.status = target
        self.updated_at = _utcnow()

    def start(self) -> None:
        self._move("processing")
        self.progress = INITIAL_PROGRESS

    def advance(self, progress: int) -> None:
        if self.status != "processing":
            raise InvalidTransition(f"job {self.job_id} is {self.status}, not processing")
        # progress never goes backwards while processing
        self.progress = max(self.progress, min(int(progress), 99))
        self.updated_at = _utcnow()

    def complete(self, artifact: Artifact) -> None:
        self._move("completed")
        self.artifact = artifact
        self.error = None
        self.progress = 100

    def fail(self, message: str) -> None:
        self._move("failed")
        self.artifact = None
        self.error = message or "Export failed"
        self.progress = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "job_id": self.job_id,
            "bundle_id": self.bundle_id,
            "status": self.status,
            "progress": self.progress,
            "error": self.error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.artifact is not None:
            data["filename"] = self.artifact.filename
            data["media_type"] = self.artifact.media_type
            data["size"] = self.artifact.size
        return data


@dataclass(slots=True)
class ExportSession:
    """All jobs submitted for one event during the current process."""

    event_id: str
    event_name: str = "event"
    jobs: list[ExportJob] = field(default_factory=list)

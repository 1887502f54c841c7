"""Infrastructure layer for export session state."""
from __future__ import annotations

from typing import Iterable, Protocol

from event_export.domain import ExportJob, ExportSession


class ExportSessionRepository(Protocol):
    """Persistence contract for per-event export jobs."""

    def ensure_session(self, event_id: str, event_name: str | None = None) -> ExportSession: ...

    def get_session(self, event_id: str) -> ExportSession | None: ...

    def save_jobs(self, event_id: str, jobs: Iterable[ExportJob]) -> None: ...

    def list_jobs(self, event_id: str) -> list[ExportJob]: ...

    def get_job(self, event_id: str, job_id: str) -> ExportJob | None: ...

    def next_job_id(self, bundle_id: str) -> str: ...

    def clear(self, event_id: str) -> None: ...

    def reset(self) -> None: ...


class InMemoryExportSessionRepository:
    """Keeps export jobs for the lifetime of the process only."""

    def __init__(self) -> None:
        self._sessions: dict[str, ExportSession] = {}
        self._job_counter = 0

    def ensure_session(self, event_id: str, event_name: str | None = None) -> ExportSession:
        session = self._sessions.get(event_id)
        if session is None:
            session = ExportSession(event_id=event_id, event_name=event_name or "event")
            self._sessions[event_id] = session
        elif event_name and session.event_name != event_name:
            session.event_name = event_name
        return session

    def get_session(self, event_id: str) -> ExportSession | None:
        return self._sessions.get(event_id)

    def save_jobs(self, event_id: str, jobs: Iterable[ExportJob]) -> None:
        """Store ``jobs``; a resubmitted bundle replaces its previous job."""

        session = self.ensure_session(event_id)
        for job in jobs:
            session.jobs = [existing for existing in session.jobs if existing.bundle_id != job.bundle_id]
            session.jobs.append(job)

    def list_jobs(self, event_id: str) -> list[ExportJob]:
        session = self._sessions.get(event_id)
        return list(session.jobs) if session else []

    def get_job(self, event_id: str, job_id: str) -> ExportJob | None:
        for job in self.list_jobs(event_id):
            if job.job_id == job_id:
                return job
        return None

    def next_job_id(self, bundle_id: str) -> str:
        self._job_counter += 1
        return f"{bundle_id}-{self._job_counter:05d}"

    def clear(self, event_id: str) -> None:
        self._sessions.pop(event_id, None)

    def reset(self) -> None:
        self._sessions.clear()
        self._job_counter = 0

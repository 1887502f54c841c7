"""Application service layer for export sessions."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable

import httpx

from event_export.core.catalog import list_bundles, select_bundles
from event_export.domain import Artifact, CallerIdentity, EventScope, ExportJob
from event_export.exporters.aggregate_zip import aggregate
from event_export.extractors import sources
from event_export.infrastructure import (
    ExportSessionRepository,
    InMemoryExportSessionRepository,
    SupabaseError,
)
from event_export.workers.pipeline import ExportWorker, get_export_worker

logger = logging.getLogger(__name__)


class ExportNotReady(RuntimeError):
    """Raised when a download is requested for a job that has not completed."""


class ExportService:
    """Coordinates export use cases for the HTTP layer."""

    def __init__(self, repository: ExportSessionRepository, worker: ExportWorker | None = None) -> None:
        self._repository = repository
        self._worker = worker

    @property
    def worker(self) -> ExportWorker:
        return self._worker or get_export_worker()

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------
    def list_bundles(self) -> list[dict[str, object]]:
        return [bundle.to_dict() for bundle in list_bundles()]

    # ------------------------------------------------------------------
    # job orchestration
    # ------------------------------------------------------------------
    async def _resolve_scope(self, event_id: str, caller: CallerIdentity) -> EventScope:
        session = self._repository.get_session(event_id)
        scope = EventScope(event_id=event_id, event_name=session.event_name if session else "event")
        if not caller.company_id:
            return scope
        try:
            event = await sources.fetch_event(self.worker.store, scope, caller)
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.warning("could not load event %s: %s", event_id, exc)
            return scope
        name = event.get("name")
        return replace(scope, event_name=str(name)) if name else scope

    async def submit(
        self,
        event_id: str,
        bundle_ids: Iterable[str],
        caller: CallerIdentity,
        *,
        today: date | None = None,
    ) -> list[ExportJob]:
        """Create one job per known bundle and run them to completion."""

        bundles = select_bundles(bundle_ids)
        if not bundles:
            return []

        scope = await self._resolve_scope(event_id, caller)
        self._repository.ensure_session(event_id, scope.event_name)
        jobs = [ExportJob(job_id=self._repository.next_job_id(bundle.id), bundle_id=bundle.id) for bundle in bundles]
        self._repository.save_jobs(event_id, jobs)
        return await self.worker.run(jobs, scope, caller, today=today)

    def list_jobs(self, event_id: str) -> list[ExportJob]:
        return self._repository.list_jobs(event_id)

    def get_job(self, event_id: str, job_id: str) -> ExportJob:
        job = self._repository.get_job(event_id, job_id)
        if job is None:
            raise KeyError(job_id)
        return job

    # ------------------------------------------------------------------
    # downloads
    # ------------------------------------------------------------------
    def download(self, event_id: str, job_id: str) -> Artifact:
        job = self.get_job(event_id, job_id)
        if job.status != "completed" or job.artifact is None:
            raise ExportNotReady(f"export {job_id} is {job.status}")
        return job.artifact

    def download_all(self, event_id: str, *, today: date | None = None) -> Artifact:
        session = self._repository.get_session(event_id)
        scope = EventScope(event_id=event_id, event_name=session.event_name if session else "event")
        return aggregate(self.list_jobs(event_id), scope, today=today)

    def clear(self, event_id: str) -> None:
        self._repository.clear(event_id)

    def reset(self) -> None:
        self._repository.reset()


_repository = InMemoryExportSessionRepository()
_service = ExportService(_repository)


def get_export_service() -> ExportService:
    return _service


def reset_export_state() -> None:
    """Utility used in tests to clear in-memory export sessions."""

    _service.reset()

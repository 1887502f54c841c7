from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, Protocol, Sequence

from event_export.core.catalog import BundleDescriptor, get_bundle
from event_export.domain import (
    Artifact,
    CallerIdentity,
    EventScope,
    ExportJob,
    SourceRecord,
)
from event_export.domain.exports import FETCHED_PROGRESS, PREPARED_PROGRESS
from event_export.exporters.aggregate_zip import bundle_filename
from event_export.exporters.analytics_pdf import encode_report
from event_export.exporters.media_archive import EmptyArchive, encode_archive
from event_export.exporters.tabular_csv import encode_csv
from event_export.extractors import sources
from event_export.extractors.placeholder import PlaceholderDataPolicy
from event_export.infrastructure import DataStore, SignedReferenceResolver, get_data_store
from event_export.infrastructure.storage import SIGNED_URL_TTL_SECONDS

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, EventScope, CallerIdentity], Awaitable[Sequence[SourceRecord]]]
JobHandler = Callable[[ExportJob], Awaitable[None]]
ProgressListener = Callable[[ExportJob], None]


class JobScheduler(Protocol):
    """Decides how the jobs of one invocation are driven to completion."""

    async def run(self, jobs: Sequence[ExportJob], handler: JobHandler) -> None: ...


class SequentialScheduler:
    """Runs one job at a time in submission order.

    The lock also serialises separate invocations, so only one job is ever in
    flight against the data store.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def run(self, jobs: Sequence[ExportJob], handler: JobHandler) -> None:
        async with self._lock:
            for job in jobs:
                await handler(job)


class ExportWorker:
    def __init__(
        self,
        *,
        store: DataStore | None = None,
        fetcher: Fetcher | None = None,
        resolver: SignedReferenceResolver | None = None,
        placeholder: PlaceholderDataPolicy | None = None,
        scheduler: JobScheduler | None = None,
        on_progress: ProgressListener | None = None,
        signed_url_ttl: int = SIGNED_URL_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._resolver = resolver
        self._signed_url_ttl = signed_url_ttl
        self._placeholder = placeholder if placeholder is not None else PlaceholderDataPolicy()
        self._scheduler = scheduler or SequentialScheduler()
        self._on_progress = on_progress

    @property
    def store(self) -> DataStore:
        return self._store or get_data_store()

    @property
    def resolver(self) -> SignedReferenceResolver:
        return self._resolver or SignedReferenceResolver(self.store, ttl_seconds=self._signed_url_ttl)

    def _notify(self, job: ExportJob) -> None:
        if self._on_progress is not None:
            self._on_progress(job)

    async def _fetch(self, bundle_id: str, scope: EventScope, caller: CallerIdentity) -> list[SourceRecord]:
        if self._fetcher is not None:
            return list(await self._fetcher(bundle_id, scope, caller))
        return await sources.fetch(bundle_id, scope, caller, store=self.store)

    async def run(
        self,
        jobs: Sequence[ExportJob],
        scope: EventScope,
        caller: CallerIdentity,
        *,
        today: date | None = None,
    ) -> list[ExportJob]:
        async def handle(job: ExportJob) -> None:
            await self.process(job, scope, caller, today=today)

        await self._scheduler.run(jobs, handle)
        return list(jobs)

    async def process(
        self,
        job: ExportJob,
        scope: EventScope,
        caller: CallerIdentity,
        *,
        today: date | None = None,
    ) -> ExportJob:
        """Drive ``job`` to a terminal state; failures stay inside this job."""

        bundle = get_bundle(job.bundle_id)
        if bundle is None:
            job.fail(f"Unknown bundle: {job.bundle_id}")
            self._notify(job)
            return job

        job.start()
        self._notify(job)
        logger.info("export %s started for event %s", job.job_id, scope.event_id)
        try:
            records = await self._fetch(bundle.id, scope, caller)
            job.advance(FETCHED_PROGRESS)
            self._notify(job)

            if not records:
                records = self._placeholder.records_for(bundle, scope)
                if records:
                    logger.info("no data for %s, using placeholder records", bundle.id)
            job.advance(PREPARED_PROGRESS)
            self._notify(job)

            artifact = await self._encode(bundle, records, scope, today)
        except Exception as exc:
            logger.exception("export %s failed", job.job_id)
            job.fail(str(exc) or exc.__class__.__name__)
            self._notify(job)
            return job

        if isinstance(artifact, EmptyArchive):
            job.fail(f"No files found for {bundle.name}")
            logger.info("export %s produced no files", job.job_id)
        else:
            job.complete(artifact)
            logger.info("export %s completed (%d bytes)", job.job_id, artifact.size)
        self._notify(job)
        return job

    async def _encode(
        self,
        bundle: BundleDescriptor,
        records: list[SourceRecord],
        scope: EventScope,
        today: date | None,
    ) -> Artifact | EmptyArchive:
        filename = bundle_filename(bundle.id, bundle.extension, today)
        if bundle.output_kind == "tabular":
            return encode_csv(bundle, records, filename=filename)
        if bundle.output_kind == "archive":
            return await encode_archive(bundle, records, self.resolver, self.store.download, filename=filename)
        if bundle.output_kind == "report":
            return encode_report(bundle, records, scope, filename=filename, generated_on=today)
        raise ValueError(f"unsupported output kind {bundle.output_kind}")


_worker: ExportWorker | None = None


def configure_export_worker(worker: ExportWorker | None) -> None:
    global _worker
    _worker = worker


def get_export_worker() -> ExportWorker:
    global _worker
    if _worker is None:
        _worker = ExportWorker()
    return _worker

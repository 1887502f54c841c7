from __future__ import annotations

import asyncio
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from event_export.application import ExportNotReady, ExportService
from event_export.core.catalog import get_bundle
from event_export.domain import Artifact, CallerIdentity, EventScope, ExportJob, InvalidTransition
from event_export.extractors.placeholder import DISABLED, PlaceholderDataPolicy
from event_export.infrastructure import InMemoryExportSessionRepository, SupabaseError
from event_export.workers.pipeline import ExportWorker

SCOPE = EventScope(event_id="evt-1", event_name="Summit")
CALLER = CallerIdentity(user_id="user-1", company_id="co-1")
TODAY = date(2024, 1, 15)


def _fetcher(data: dict[str, list[dict]], failing: set[str] | None = None):
    failing = failing or set()

    async def fetch(bundle_id, scope, caller):
        if bundle_id in failing:
            raise RuntimeError(f"{bundle_id} source exploded")
        return data.get(bundle_id, [])

    return fetch


class _Resolver:
    async def resolve(self, reference: str) -> str:
        return reference


class _Store:
    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        self.files = files or {}

    async def query(self, table, filters, **kwargs):
        return []

    async def sign(self, bucket, path, ttl_seconds):
        return path

    async def download(self, url: str) -> bytes:
        if url not in self.files:
            raise SupabaseError("missing")
        return self.files[url]


def _worker(fetcher, *, placeholder=DISABLED, files=None, on_progress=None) -> ExportWorker:
    return ExportWorker(
        store=_Store(files),
        fetcher=fetcher,
        resolver=_Resolver(),
        placeholder=placeholder,
        on_progress=on_progress,
    )


def _jobs(*bundle_ids: str) -> list[ExportJob]:
    return [ExportJob(job_id=f"{bundle_id}-{index}", bundle_id=bundle_id) for index, bundle_id in enumerate(bundle_ids)]


# ----------------------------------------------------------------------
# job state machine
# ----------------------------------------------------------------------
def test_job_moves_forward_only():
    job = ExportJob(job_id="guests-1", bundle_id="guests")
    assert (job.status, job.progress) == ("pending", 0)

    job.start()
    assert (job.status, job.progress) == ("processing", 10)
    job.advance(70)
    job.advance(30)
    assert job.progress == 70

    job.complete(Artifact(content=b"x", filename="guests.csv", media_type="text/csv", output_kind="tabular"))
    assert (job.status, job.progress) == ("completed", 100)
    with pytest.raises(InvalidTransition):
        job.start()
    with pytest.raises(InvalidTransition):
        job.fail("late failure")


def test_failed_job_has_zero_progress_and_no_artifact():
    job = ExportJob(job_id="guests-1", bundle_id="guests")
    job.start()
    job.advance(30)
    job.fail("")
    assert job.status == "failed"
    assert job.progress == 0
    assert job.artifact is None
    assert job.error == "Export failed"
    assert job.to_dict()["status"] == "failed"


# ----------------------------------------------------------------------
# worker
# ----------------------------------------------------------------------
def test_failing_fetcher_does_not_abort_other_jobs():
    fetcher = _fetcher({"guests": [{"id": "g1"}], "announcements": [{"id": "a1"}]}, failing={"activity-log"})
    jobs = _jobs("guests", "activity-log", "announcements")

    finished = asyncio.run(_worker(fetcher).run(jobs, SCOPE, CALLER, today=TODAY))

    assert [job.status for job in finished] == ["completed", "failed", "completed"]
    assert "exploded" in finished[1].error
    assert finished[1].progress == 0
    assert finished[0].artifact.filename == "guests-2024-01-15.csv"
    assert finished[2].progress == 100


def test_progress_is_reported_in_forward_steps():
    seen: list[tuple[str, int]] = []
    worker = _worker(
        _fetcher({"guests": [{"id": "g1"}]}),
        on_progress=lambda job: seen.append((job.status, job.progress)),
    )
    asyncio.run(worker.run(_jobs("guests"), SCOPE, CALLER, today=TODAY))

    assert seen == [("processing", 10), ("processing", 30), ("processing", 70), ("completed", 100)]


def test_empty_archive_fails_with_bundle_name():
    fetcher = _fetcher({"chat-media": [{"id": "m1", "attachment_url": "https://cdn.example.com/gone.jpg"}]})
    job = asyncio.run(_worker(fetcher).process(_jobs("chat-media")[0], SCOPE, CALLER, today=TODAY))

    assert job.status == "failed"
    assert job.error == "No files found for Guest Chat Media (ZIP)"


def test_archive_completes_when_files_download():
    url = "https://cdn.example.com/a.jpg"
    fetcher = _fetcher({"chat-media": [{"id": "m1", "attachment_url": url, "message_type": "image"}]})
    job = asyncio.run(_worker(fetcher, files={url: b"img"}).process(_jobs("chat-media")[0], SCOPE, CALLER, today=TODAY))

    assert job.status == "completed"
    assert job.artifact.filename == "chat-media-2024-01-15.zip"


def test_placeholder_records_fill_empty_fetches():
    worker = _worker(_fetcher({}), placeholder=PlaceholderDataPolicy())
    job = asyncio.run(worker.process(_jobs("guests")[0], SCOPE, CALLER, today=TODAY))

    assert job.status == "completed"
    text = job.artifact.content.decode("utf-8")
    assert "John" in text
    assert len(text.strip().splitlines()) == 3


def test_empty_fetch_without_placeholder_yields_header_only_csv():
    job = asyncio.run(_worker(_fetcher({})).process(_jobs("announcements")[0], SCOPE, CALLER, today=TODAY))

    assert job.status == "completed"
    assert len(job.artifact.content.decode("utf-8").splitlines()) == 1


def test_unknown_bundle_fails():
    job = asyncio.run(_worker(_fetcher({})).process(_jobs("does-not-exist")[0], SCOPE, CALLER))
    assert job.status == "failed"
    assert "does-not-exist" in job.error


def test_placeholder_policy_never_invents_media():
    policy = PlaceholderDataPolicy()
    assert policy.records_for(get_bundle("chat-media"), SCOPE) == []
    assert DISABLED.records_for(get_bundle("guests"), SCOPE) == []
    assert policy.records_for(get_bundle("module-responses-typed"), SCOPE)[0]["module_type"] == "feedback"


# ----------------------------------------------------------------------
# repository and service
# ----------------------------------------------------------------------
def test_resubmitted_bundle_replaces_previous_job():
    repository = InMemoryExportSessionRepository()
    first = ExportJob(job_id=repository.next_job_id("guests"), bundle_id="guests")
    other = ExportJob(job_id=repository.next_job_id("announcements"), bundle_id="announcements")
    repository.save_jobs("evt-1", [first, other])

    again = ExportJob(job_id=repository.next_job_id("guests"), bundle_id="guests")
    repository.save_jobs("evt-1", [again])

    jobs = repository.list_jobs("evt-1")
    assert [job.job_id for job in jobs] == ["announcements-00002", "guests-00003"]
    assert repository.get_job("evt-1", "guests-00001") is None
    assert repository.list_jobs("evt-2") == []


def test_service_runs_jobs_and_serves_downloads():
    worker = _worker(_fetcher({"guests": [{"id": "g1"}]}, failing={"announcements"}))
    service = ExportService(InMemoryExportSessionRepository(), worker)

    jobs = asyncio.run(service.submit("evt-1", ["guests", "announcements", "bogus"], CALLER, today=TODAY))

    assert [job.bundle_id for job in jobs] == ["guests", "announcements"]
    assert service.download("evt-1", jobs[0].job_id).filename == "guests-2024-01-15.csv"
    with pytest.raises(ExportNotReady):
        service.download("evt-1", jobs[1].job_id)
    with pytest.raises(KeyError):
        service.download("evt-1", "missing")

    archive = service.download_all("evt-1", today=TODAY)
    assert archive.filename.endswith("_export_2024-01-15.zip")

    service.clear("evt-1")
    assert service.list_jobs("evt-1") == []


def test_service_ignores_empty_selection():
    service = ExportService(InMemoryExportSessionRepository(), _worker(_fetcher({})))
    assert asyncio.run(service.submit("evt-1", ["bogus"], CALLER)) == []
    assert service.list_jobs("evt-1") == []

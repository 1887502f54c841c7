from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Header, HTTPException
from fastapi.responses import Response

from event_export.application import ExportNotReady, get_export_service
from event_export.core.schema import BundleModel, ExportJobModel, ExportSubmission
from event_export.domain import Artifact, CallerIdentity
from event_export.exporters.aggregate_zip import NothingToAggregate

router = APIRouter(tags=["exports"])


def _content_disposition(filename: str) -> str:
    encoded = quote(filename)
    if encoded == filename:
        return f'attachment; filename="{filename}"'
    # headers are latin-1; non-ASCII names travel in filename* (RFC 5987)
    fallback = filename.encode("ascii", "ignore").decode("ascii").replace('"', "").strip() or "export"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def _file_response(artifact: Artifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": _content_disposition(artifact.filename)},
    )


@router.get("/bundles")
async def list_bundles() -> dict:
    service = get_export_service()
    items = [BundleModel(**bundle).model_dump() for bundle in service.list_bundles()]
    return {"items": items}


@router.post("/events/{event_id}/exports")
async def submit_exports(
    event_id: str,
    payload: ExportSubmission,
    x_company_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> dict:
    """Run one export job per selected bundle and report their final state."""
    if not payload.bundles:
        raise HTTPException(status_code=400, detail="Please select at least one data bundle to export.")

    service = get_export_service()
    caller = CallerIdentity(user_id=x_user_id, company_id=x_company_id)
    jobs = await service.submit(event_id, payload.bundles, caller)
    return {"event_id": event_id, "items": [ExportJobModel(**job.to_dict()).model_dump() for job in jobs]}


@router.get("/events/{event_id}/exports")
async def list_exports(event_id: str) -> dict:
    service = get_export_service()
    jobs = service.list_jobs(event_id)
    completed = sum(1 for job in jobs if job.status == "completed")
    return {
        "event_id": event_id,
        "items": [ExportJobModel(**job.to_dict()).model_dump() for job in jobs],
        "download_all_available": completed > 0,
    }


@router.get("/events/{event_id}/exports/archive")
async def download_all(event_id: str) -> Response:
    service = get_export_service()
    try:
        artifact = service.download_all(event_id)
    except NothingToAggregate as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _file_response(artifact)


@router.get("/events/{event_id}/exports/{job_id}/download")
async def download_export(event_id: str, job_id: str) -> Response:
    service = get_export_service()
    try:
        artifact = service.download(event_id, job_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="export not found") from exc
    except ExportNotReady as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _file_response(artifact)


@router.delete("/events/{event_id}/exports")
async def clear_exports(event_id: str) -> dict:
    service = get_export_service()
    service.clear(event_id)
    return {"event_id": event_id, "cleared": True}

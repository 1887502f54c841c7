from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ExportSubmission(BaseModel):
    bundles: list[str] = Field(default_factory=list)


class BundleModel(BaseModel):
    id: str
    name: str
    description: str
    output_kind: Literal["tabular", "archive", "report"]
    extension: str
    category: str
    size_estimate: str
    includes: list[str] = Field(default_factory=list)
    columns: list[str] = Field(default_factory=list)


class ExportJobModel(BaseModel):
    job_id: str
    bundle_id: str
    status: Literal["pending", "processing", "completed", "failed"]
    progress: int = Field(ge=0, le=100)
    error: str | None = None
    filename: str | None = None
    media_type: str | None = None
    size: int | None = None
    created_at: str
    updated_at: str

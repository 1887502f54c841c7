"""Domain layer definitions."""

from .exports import (
    Artifact,
    CallerIdentity,
    EventScope,
    ExportJob,
    ExportSession,
    InvalidTransition,
    JobStatus,
    OutputKind,
    SourceRecord,
)

__all__ = [
    "Artifact",
    "CallerIdentity",
    "EventScope",
    "ExportJob",
    "ExportSession",
    "InvalidTransition",
    "JobStatus",
    "OutputKind",
    "SourceRecord",
]

"""Application services."""

from .exports import ExportNotReady, ExportService, get_export_service, reset_export_state

__all__ = [
    "ExportNotReady",
    "ExportService",
    "get_export_service",
    "reset_export_state",
]

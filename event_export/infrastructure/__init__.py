"""Infrastructure layer exports."""

from .sessions import ExportSessionRepository, InMemoryExportSessionRepository
from .storage import SignedReferenceResolver, StorageObject, parse_storage_reference
from .supabase import (
    DataStore,
    SupabaseClient,
    SupabaseError,
    UnconfiguredDataStore,
    configure_data_store,
    get_data_store,
)

__all__ = [
    "DataStore",
    "ExportSessionRepository",
    "InMemoryExportSessionRepository",
    "SignedReferenceResolver",
    "StorageObject",
    "SupabaseClient",
    "SupabaseError",
    "UnconfiguredDataStore",
    "configure_data_store",
    "get_data_store",
    "parse_storage_reference",
]

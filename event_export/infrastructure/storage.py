"""Resolution of stored-object references into short-lived signed URLs."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote

import httpx

from .supabase import DataStore, SupabaseError

logger = logging.getLogger(__name__)

SIGNED_URL_TTL_SECONDS = 60

# Storage object URLs look like
#   https://<project>.supabase.co/storage/v1/object/public/<bucket>/<path>
#   https://<project>.supabase.co/storage/v1/object/sign/<bucket>/<path>?token=...
_OBJECT_PATTERNS = (
    re.compile(r"/storage/v1/object/public/(?P<bucket>[^/?#]+)/(?P<path>[^?#]+)"),
    re.compile(r"/storage/v1/object/sign/(?P<bucket>[^/?#]+)/(?P<path>[^?#]+)"),
)


@dataclass(frozen=True, slots=True)
class StorageObject:
    bucket: str
    path: str


def parse_storage_reference(reference: str) -> StorageObject | None:
    """Return the bucket/path pair for recognised storage URLs, else ``None``."""

    if not reference:
        return None
    for pattern in _OBJECT_PATTERNS:
        match = pattern.search(reference)
        if match:
            return StorageObject(bucket=unquote(match.group("bucket")), path=unquote(match.group("path")))
    return None


class SignedReferenceResolver:
    """Turns raw stored references into fetchable URLs.

    Unrecognised references and signing failures degrade to the raw reference;
    the caller then attempts a direct fetch.
    """

    def __init__(self, store: DataStore, *, ttl_seconds: int = SIGNED_URL_TTL_SECONDS) -> None:
        self._store = store
        self._ttl = ttl_seconds

    async def resolve(self, reference: str) -> str:
        target = parse_storage_reference(reference)
        if target is None:
            return reference
        try:
            return await self._store.sign(target.bucket, target.path, self._ttl)
        except (SupabaseError, httpx.HTTPError) as exc:
            logger.warning("signing %s/%s failed, using raw reference: %s", target.bucket, target.path, exc)
            return reference

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_SIGNED_URL_TTL = 60
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass(slots=True)
class ExportSettings:
    supabase_url: str | None = None
    supabase_key: str | None = None
    signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL
    placeholder_data: bool = True
    http_timeout: float = 30.0
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "ExportSettings":
        origins_env = os.getenv("API_CORS_ORIGINS", "")
        origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None,
            signed_url_ttl=_env_int("EXPORT_SIGNED_URL_TTL", DEFAULT_SIGNED_URL_TTL),
            placeholder_data=_env_flag("EXPORT_PLACEHOLDER_DATA", True),
            http_timeout=_env_float("EXPORT_HTTP_TIMEOUT", 30.0),
            log_level=(os.getenv("EXPORT_LOG_LEVEL") or "INFO").upper(),
            cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        )

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_export.core.settings import ExportSettings
from event_export.extractors.placeholder import PlaceholderDataPolicy
from event_export.infrastructure import SupabaseClient, configure_data_store
from event_export.routes import exports
from event_export.workers.pipeline import ExportWorker, configure_export_worker


def create_app() -> FastAPI:
    settings = ExportSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client: SupabaseClient | None = None
    if settings.supabase_url and settings.supabase_key:
        client = SupabaseClient(settings.supabase_url, settings.supabase_key, timeout=settings.http_timeout)
        configure_data_store(client)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        if client is not None:
            await client.aclose()

    app = FastAPI(title="Event Data Export API", version="0.1.0", lifespan=lifespan)

    configure_export_worker(
        ExportWorker(
            placeholder=PlaceholderDataPolicy(enabled=settings.placeholder_data),
            signed_url_ttl=settings.signed_url_ttl,
        )
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(exports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Event Data Export API",
                "docs": "/docs",
                "health": "/api/bundles",
            }
        )

    return app


app = create_app()

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from finreport.config import get_backend_settings, get_storage_settings, get_upload_settings


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Log the effective collaborator configuration on boot."""
    logger = logging.getLogger(__name__)
    storage = get_storage_settings()
    upload = get_upload_settings()
    backend = get_backend_settings()
    logger.info(
        "Upload settings storage_backend=%s max_upload_bytes=%s max_concurrent=%s",
        storage.backend,
        upload.max_upload_bytes,
        upload.max_concurrent_uploads,
    )
    if not backend.graphql_endpoint:
        logger.warning("GRAPHQL_ENDPOINT is not set; report endpoints will fail until it is configured")
    yield
    logger.info("Shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _configure_logging()

    application = FastAPI(
        title="Financial Report API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from finreport.api.routers import reports_router, uploads_router

    application.include_router(reports_router)
    application.include_router(uploads_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()

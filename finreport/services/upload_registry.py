"""
finreport/services/upload_registry.py

In-process registry of upload sessions plus env-driven collaborator factories.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Callable

from finreport.config import (
    get_external_http_settings,
    get_storage_settings,
    get_upload_api_settings,
    get_upload_settings,
)
from finreport.connectors.upload_api import ProcessingMonitor, UploadAPIClient
from finreport.domain.errors import UnknownSessionError
from finreport.services.upload_session import UploadSession
from finreport.storage.base import ObjectStorage
from finreport.storage.local import LocalFileStorage
from finreport.storage.presigned import PresignedUrlStorage

logger = logging.getLogger(__name__)


class UploadSessionRegistry:
    """
    Keeps upload sessions addressable by id between HTTP requests.
    """

    def __init__(self, factory: Callable[[], UploadSession]) -> None:
        self._factory = factory
        self._sessions: dict[str, UploadSession] = {}
        self._lock = threading.Lock()

    def create(self) -> UploadSession:
        session = self._factory()
        with self._lock:
            self._sessions[session.id] = session
        logger.info("Upload session created session_id=%s", session.id)
        return session

    def get(self, session_id: str) -> UploadSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(f"Upload session '{session_id}' does not exist.")
        return session

    def discard(self, session_id: str) -> None:
        session = self.get(session_id)
        session.reset()
        with self._lock:
            self._sessions.pop(session_id, None)
        logger.info("Upload session discarded session_id=%s", session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


@lru_cache(maxsize=1)
def get_upload_api_client() -> UploadAPIClient | None:
    """
    Upload API client, or None when UPLOAD_API_BASE_URL is not configured.
    """

    settings = get_upload_api_settings()
    if not settings.base_url:
        return None
    return UploadAPIClient(settings=settings, http_settings=get_external_http_settings())


@lru_cache(maxsize=1)
def get_object_storage() -> ObjectStorage:
    storage_settings = get_storage_settings()
    if storage_settings.backend == "local":
        return LocalFileStorage(storage_settings.local_root_dir, folder=storage_settings.folder)

    client = get_upload_api_client()
    if client is None:
        raise RuntimeError("STORAGE_BACKEND=presigned requires UPLOAD_API_BASE_URL to be set.")
    return PresignedUrlStorage(
        destinations=client,
        public_base_url=storage_settings.public_base_url,
        timeout_seconds=get_external_http_settings().timeout_seconds,
    )


def get_processing_monitor() -> ProcessingMonitor | None:
    return get_upload_api_client()


@lru_cache(maxsize=1)
def get_upload_session_registry() -> UploadSessionRegistry:
    """
    Build and cache the registry; sessions share env-driven collaborators.
    """

    def build_session() -> UploadSession:
        return UploadSession(
            storage=get_object_storage(),
            monitor=get_processing_monitor(),
            settings=get_upload_settings(),
        )

    return UploadSessionRegistry(build_session)

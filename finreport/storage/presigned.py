"""
Object storage through pre-authorized (presigned) PUT URLs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

import requests

from finreport.domain.errors import BackendRequestError, TransferError
from finreport.storage.base import (
    ProgressCallback,
    StoredObject,
    UploadDestination,
    iter_chunks,
)

logger = logging.getLogger(__name__)


class DestinationProvider(Protocol):
    def get_presigned_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        ...


def public_url_for(destination: UploadDestination, public_base_url: str | None = None) -> str:
    """
    Public object URL: ``{public_base_url}/{key}`` when configured, otherwise
    the presigned URL without its signature query.
    """

    if public_base_url:
        return f"{public_base_url.rstrip('/')}/{destination.key.lstrip('/')}"
    parts = urlsplit(destination.url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class PresignedUrlStorage:
    """
    Streams file bytes to a presigned destination issued by the upload API.
    """

    def __init__(
        self,
        *,
        destinations: DestinationProvider,
        public_base_url: str | None = None,
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._destinations = destinations
        self._public_base_url = public_base_url
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def prepare_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        try:
            return self._destinations.get_presigned_destination(
                file_name=file_name,
                content_type=content_type,
            )
        except BackendRequestError as exc:
            raise TransferError(f"Could not obtain an upload destination: {exc}") from exc

    def put(
        self,
        *,
        destination: UploadDestination,
        content: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> StoredObject:
        headers = {**destination.headers, "Content-Type": content_type, "Content-Length": str(len(content))}
        try:
            response = self._session.request(
                method=destination.method,
                url=destination.url,
                data=iter_chunks(content, on_progress=on_progress),
                headers=headers,
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Presigned transfer failed key=%s error=%s", destination.key, exc)
            raise TransferError("Failed to upload file. Please try again.") from exc

        return StoredObject(
            key=destination.key,
            url=public_url_for(destination, self._public_base_url),
            content_type=content_type,
            size_bytes=len(content),
            stored_at=datetime.now(timezone.utc),
        )

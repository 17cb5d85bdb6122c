"""
finreport/connectors/upload_api.py

Client for the upload API gateway: presigned destinations, completion
notification and remote processing status.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol
from urllib.parse import quote

import requests

from finreport.config import ExternalHTTPSettings, UploadAPISettings
from finreport.connectors.base import BaseHTTPClient
from finreport.domain.errors import BackendRequestError
from finreport.domain.upload import ProcessingState, ProcessingStatus
from finreport.storage.base import UploadDestination

logger = logging.getLogger(__name__)

_STATE_ALIASES = {
    "completed": ProcessingState.COMPLETED,
    "complete": ProcessingState.COMPLETED,
    "success": ProcessingState.COMPLETED,
    "succeeded": ProcessingState.COMPLETED,
    "failed": ProcessingState.FAILED,
    "error": ProcessingState.FAILED,
}


class ProcessingMonitor(Protocol):
    """
    Completion channel for remote processing of stored files.
    """

    def notify_stored(self, remote_key: str, metadata: Mapping[str, Any] | None = None) -> None:
        ...

    def get_status(self, remote_key: str) -> ProcessingStatus:
        ...


class UploadAPIClient(BaseHTTPClient):
    """
    REST client for the upload gateway.
    """

    def __init__(
        self,
        *,
        settings: UploadAPISettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.base_url:
            raise BackendRequestError("upload_api: UPLOAD_API_BASE_URL is not configured.")
        super().__init__(service="upload_api", http_settings=http_settings, session=session)
        self._base_url = settings.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if settings.api_key:
            self._headers["x-api-key"] = settings.api_key

    def get_presigned_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        payload = self._request_json(
            method="POST",
            url=f"{self._base_url}/upload/presigned-url",
            json_body={"fileName": file_name, "fileType": content_type},
            headers=self._headers,
        )
        if not isinstance(payload, Mapping):
            raise BackendRequestError("upload_api: presigned-url response must be an object.")

        url = payload.get("presignedUrl")
        key = payload.get("fileKey")
        if not isinstance(url, str) or not url or not isinstance(key, str) or not key:
            raise BackendRequestError("upload_api: presigned-url response is missing presignedUrl or fileKey.")
        return UploadDestination(key=key, url=url, headers={"Content-Type": content_type})

    def notify_stored(self, remote_key: str, metadata: Mapping[str, Any] | None = None) -> None:
        self._request_json(
            method="POST",
            url=f"{self._base_url}/upload/complete",
            json_body={"fileKey": remote_key, "metadata": dict(metadata or {})},
            headers=self._headers,
        )
        logger.info("Upload completion notified remote_key=%s", remote_key)

    def get_status(self, remote_key: str) -> ProcessingStatus:
        payload = self._request_json(
            method="GET",
            url=f"{self._base_url}/upload/status/{quote(remote_key, safe='')}",
            headers=self._headers,
        )
        if not isinstance(payload, Mapping):
            raise BackendRequestError("upload_api: status response must be an object.")
        return parse_processing_status(payload)


def parse_processing_status(payload: Mapping[str, Any]) -> ProcessingStatus:
    """
    Map a status payload onto ``ProcessingStatus``; unknown states count as
    still processing.
    """

    raw_state = str(payload.get("status") or "").strip().lower()
    state = _STATE_ALIASES.get(raw_state, ProcessingState.PROCESSING)

    progress: int | None = None
    raw_progress = payload.get("progress")
    if isinstance(raw_progress, (int, float)) and not isinstance(raw_progress, bool):
        progress = max(0, min(100, int(raw_progress)))

    message = payload.get("message") or payload.get("error")
    return ProcessingStatus(
        state=state,
        progress=progress,
        message=str(message) if message else None,
    )

"""
finreport/schemas/uploads.py

Response schemas for upload session endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FileItemResponse(BaseModel):
    """
    API response model for one tracked file.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    mime_type: str
    size_bytes: int = Field(..., ge=0)
    progress_percent: int = Field(..., ge=0, le=100)
    status: str
    error: str | None = None
    remote_url: str | None = None
    remote_key: str | None = None
    parsed_payload: Any = None


class UploadSessionResponse(BaseModel):
    session_id: str
    files: list[FileItemResponse] = Field(default_factory=list)
    has_successful_upload: bool
    all_files_complete: bool


class UploadSummaryResponse(BaseModel):
    """
    API response model for one upload run.
    """

    session_id: str
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    files: list[FileItemResponse] = Field(default_factory=list)

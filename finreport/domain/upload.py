"""
finreport/domain/upload.py

Upload session entities and the file status state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class FileStatus:
    """Valid states of one file in an upload session."""

    PENDING = "pending"
    VALIDATING = "validating"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_STATUSES = frozenset({FileStatus.SUCCESS, FileStatus.ERROR})

IN_FLIGHT_STATUSES = frozenset(
    {FileStatus.VALIDATING, FileStatus.UPLOADING, FileStatus.PROCESSING}
)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    FileStatus.PENDING: frozenset({FileStatus.VALIDATING, FileStatus.ERROR}),
    FileStatus.VALIDATING: frozenset({FileStatus.UPLOADING, FileStatus.ERROR}),
    FileStatus.UPLOADING: frozenset({FileStatus.PROCESSING, FileStatus.ERROR}),
    FileStatus.PROCESSING: frozenset({FileStatus.SUCCESS, FileStatus.ERROR}),
    FileStatus.SUCCESS: frozenset(),
    FileStatus.ERROR: frozenset(),
}


class ProcessingState:
    """Remote processing states reported by the upload API."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class FileItem:
    """
    One file tracked by an upload session.

    Only ``UploadSession`` mutates these objects.
    """

    id: str
    name: str
    mime_type: str
    size_bytes: int
    progress_percent: int = 0
    status: str = FileStatus.PENDING
    error: str | None = None
    remote_url: str | None = None
    parsed_payload: Any = None
    remote_key: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class ProcessingStatus:
    """
    Remote processing status for one stored object.
    """

    state: str
    progress: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class UploadSummary:
    """
    End-of-run upload summary.
    """

    succeeded: int
    failed: int
    files: list[FileItem] = field(default_factory=list)

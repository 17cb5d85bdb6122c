"""
finreport/validators/upload_validator.py

Validation helpers for upload session flows.
"""

from __future__ import annotations

from mimetypes import guess_type
from pathlib import Path

from finreport.domain.errors import UploadValidationError

PDF_CONTENT_TYPE = "application/pdf"
JSON_CONTENT_TYPE = "application/json"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_CONTENT_TYPE = "application/vnd.ms-excel"
CSV_CONTENT_TYPES = {"text/csv", "application/csv"}

SPREADSHEET_CONTENT_TYPES = {XLSX_CONTENT_TYPE, XLS_CONTENT_TYPE}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xls"}

ALLOWED_CONTENT_TYPES = {
    PDF_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    *SPREADSHEET_CONTENT_TYPES,
    *CSV_CONTENT_TYPES,
}

_EXTENSION_CONTENT_TYPES = {
    ".pdf": PDF_CONTENT_TYPE,
    ".json": JSON_CONTENT_TYPE,
    ".xlsx": XLSX_CONTENT_TYPE,
    ".xls": XLS_CONTENT_TYPE,
    ".csv": "text/csv",
}

_GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}


def resolve_content_type(file_name: str, content_type: str | None) -> str:
    """
    Normalize a declared MIME type, falling back to the file extension when
    the browser sent nothing useful.
    """

    declared = (content_type or "").split(";", 1)[0].strip().lower()
    if declared not in _GENERIC_CONTENT_TYPES:
        return declared
    extension = Path(file_name).suffix.lower()
    guessed = _EXTENSION_CONTENT_TYPES.get(extension) or guess_type(file_name)[0]
    return (guessed or declared or "application/octet-stream").lower()


def is_spreadsheet(content_type: str) -> bool:
    return content_type in SPREADSHEET_CONTENT_TYPES or "excel" in content_type


class UploadValidator:
    """
    Screens files when they are added and again right before transfer.
    """

    def __init__(self, *, max_upload_bytes: int) -> None:
        self._max_upload_bytes = max(1, max_upload_bytes)

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def screen(self, *, file_name: str, content_type: str | None, size_bytes: int) -> str:
        """
        Initial type/size screening. Returns the resolved content type.
        """

        if not file_name or not file_name.strip():
            raise UploadValidationError("file_name is required.", reason="type")

        resolved = resolve_content_type(file_name, content_type)
        if resolved not in ALLOWED_CONTENT_TYPES:
            raise UploadValidationError(
                "Invalid file type. Please upload PDF, JSON, Excel, or CSV files.",
                reason="type",
            )

        if size_bytes > self._max_upload_bytes:
            limit_mb = self._max_upload_bytes / (1024 * 1024)
            raise UploadValidationError(
                f"File size exceeds the maximum limit of {limit_mb:g}MB. "
                f"Current size: {size_bytes / (1024 * 1024):.2f}MB",
                reason="size",
            )
        return resolved

    def validate(self, *, file_name: str, content_type: str | None, content: bytes) -> str:
        """
        Pre-transfer validation pass.

        Re-applies the screening rules (the policy may have changed since the
        file was added) and checks spreadsheet extensions, since spreadsheet
        MIME sniffing is unreliable.
        """

        resolved = self.screen(
            file_name=file_name,
            content_type=content_type,
            size_bytes=len(content),
        )

        if not content:
            raise UploadValidationError("Uploaded file content is empty.", reason="empty")

        extension = Path(file_name).suffix.lower()
        if is_spreadsheet(resolved) and extension not in SPREADSHEET_EXTENSIONS:
            raise UploadValidationError(
                "Invalid Excel file format. Only .xlsx and .xls files are allowed.",
                reason="extension",
            )
        return resolved

"""
finreport/domain/errors.py

Exception taxonomy for report normalization and upload flows.
"""

from __future__ import annotations


class FinancialReportError(Exception):
    """Base exception for report decoding and normalization failures."""


class MalformedTaggedValue(FinancialReportError):
    """Raised when a wire node does not carry exactly one known tag."""


class MalformedNumber(FinancialReportError):
    """Raised when a numeric tag payload is not a decimal numeral."""

    def __init__(self, raw: object, *, path: str | None = None) -> None:
        location = f" at {path}" if path else ""
        super().__init__(f"Malformed number{location}: {raw!r}")
        self.raw = raw
        self.path = path


class UnknownRatioKey(FinancialReportError):
    """Raised when a ratio key is not part of its category table."""

    def __init__(self, category: str, key: str) -> None:
        super().__init__(f"Unknown ratio key {key!r} for category {category!r}")
        self.category = category
        self.key = key


class MalformedReport(FinancialReportError):
    """Raised when a report lacks a required identity field."""


class ReportNotFoundError(FinancialReportError):
    """Raised when the backend has no report for the requested identity."""


class BackendRequestError(RuntimeError):
    """Raised when a backend collaborator request fails."""


class UploadError(Exception):
    """Base exception for upload session failures."""


class UploadValidationError(UploadError):
    """
    Raised when a file is rejected before transfer.

    ``reason`` is one of ``size``, ``type``, ``extension`` or ``empty``.
    """

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class TransferError(UploadError):
    """Raised when bytes cannot be stored by the storage backend."""


class ProcessingTimeout(UploadError):
    """Raised when remote processing does not finish within the configured window."""


class FileInFlightError(UploadError):
    """Raised when removing a file whose transfer is still running."""


class UnknownFileError(UploadError):
    """Raised when a file identifier is not part of the session."""


class InvalidTransitionError(UploadError):
    """Raised when a file status change is not allowed by the state machine."""


class FileParseError(UploadError):
    """Raised when structured data cannot be extracted from an uploaded file."""


class ProcessingFailedError(UploadError):
    """Raised when the processing backend reports a failed job."""


class UnknownSessionError(UploadError):
    """Raised when an upload session identifier is not registered."""

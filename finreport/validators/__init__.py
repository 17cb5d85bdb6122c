"""
finreport/validators package marker.
"""

from finreport.validators.upload_validator import (
    ALLOWED_CONTENT_TYPES,
    UploadValidator,
    is_spreadsheet,
    resolve_content_type,
)

__all__ = [
    "ALLOWED_CONTENT_TYPES",
    "UploadValidator",
    "is_spreadsheet",
    "resolve_content_type",
]

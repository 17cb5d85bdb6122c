"""
finreport/storage package marker.
"""

from finreport.storage.base import (
    ObjectStorage,
    StoredObject,
    UploadDestination,
    build_object_key,
    iter_chunks,
)
from finreport.storage.local import LocalFileStorage
from finreport.storage.presigned import PresignedUrlStorage, public_url_for

__all__ = [
    "LocalFileStorage",
    "ObjectStorage",
    "PresignedUrlStorage",
    "StoredObject",
    "UploadDestination",
    "build_object_key",
    "iter_chunks",
    "public_url_for",
]

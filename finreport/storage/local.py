"""
Local filesystem object storage, used for development and tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from finreport.domain.errors import TransferError
from finreport.storage.base import (
    ProgressCallback,
    StoredObject,
    UploadDestination,
    build_object_key,
    iter_chunks,
)

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """
    Stores objects under ``root_dir`` using the same key layout as the
    remote bucket.
    """

    def __init__(self, root_dir: str | Path = "data/uploads", *, folder: str = "") -> None:
        self._root_dir = Path(root_dir)
        self._folder = folder

    def prepare_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        key = build_object_key(file_name, folder=self._folder)
        url = (self._root_dir / key).resolve().as_uri()
        return UploadDestination(key=key, url=url, headers={"Content-Type": content_type})

    def put(
        self,
        *,
        destination: UploadDestination,
        content: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> StoredObject:
        absolute_path = self._root_dir / Path(destination.key)
        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                for chunk in iter_chunks(content, on_progress=on_progress):
                    handle.write(chunk)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise TransferError("Failed to write uploaded file to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temporary upload file path=%s", tmp_path)

        return StoredObject(
            key=destination.key,
            url=destination.url,
            content_type=content_type,
            size_bytes=len(content),
            stored_at=datetime.now(timezone.utc),
        )

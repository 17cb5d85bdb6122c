"""
Storage backend abstractions for uploaded financial statements.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, Protocol

from finreport.domain.errors import TransferError

ProgressCallback = Callable[[int], None]

DEFAULT_CHUNK_SIZE = 64 * 1024

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class UploadDestination:
    """
    Pre-authorized destination for one object.
    """

    key: str
    url: str
    method: str = "PUT"
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredObject:
    """
    Metadata produced by the storage backend after saving a file.
    """

    key: str
    url: str
    content_type: str
    size_bytes: int
    stored_at: datetime


class ObjectStorage(Protocol):
    """
    Object storage used by upload sessions.
    """

    def prepare_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        ...

    def put(
        self,
        *,
        destination: UploadDestination,
        content: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> StoredObject:
        ...


def sanitize_file_name(file_name: str) -> str:
    safe_name = _WHITESPACE.sub("_", Path(file_name).name.strip())
    if not safe_name:
        raise TransferError("Invalid file name.")
    return safe_name


def build_object_key(file_name: str, *, folder: str = "", now: datetime | None = None) -> str:
    """
    ``{folder}/{epoch_millis}-{file_name}`` with whitespace replaced by underscores.
    """

    moment = now or datetime.now(timezone.utc)
    stamp = int(moment.timestamp() * 1000)
    name = f"{stamp}-{sanitize_file_name(file_name)}"
    return f"{folder.strip('/')}/{name}" if folder.strip("/") else name


def iter_chunks(
    content: bytes,
    *,
    on_progress: ProgressCallback | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """
    Yield ``content`` in chunks, reporting cumulative percentage as each one is consumed.
    """

    total = len(content)
    if total == 0:
        if on_progress is not None:
            on_progress(100)
        return
    for offset in range(0, total, chunk_size):
        chunk = content[offset : offset + chunk_size]
        yield chunk
        if on_progress is not None:
            on_progress(min(100, round((offset + len(chunk)) * 100 / total)))

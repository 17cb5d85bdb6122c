"""
finreport/services/upload_session.py

Upload session state machine.

Each file moves along

    pending -> validating -> uploading -> processing -> success

and may drop to ``error`` from any non-terminal state. ``success`` and
``error`` are terminal. ``upload_all`` runs every pending file as its own
asyncio task, bounded by ``max_concurrent_uploads``; storage and monitor
calls are blocking and run in worker threads. Progress reported from those
threads is marshalled back onto the event loop, so per-file updates apply in
the order they were produced and all mutation happens on one thread.

Processing completion
---------------------
With a ``ProcessingMonitor`` the session notifies the backend that the
object is stored and polls its status until it completes, fails, or the
configured timeout elapses. Without one it falls back to promoting the file
to ``success`` after ``processing_delay_seconds``; a slow backend job is
invisible in that mode.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Awaitable, Callable

from finreport.config import UploadSettings, get_upload_settings
from finreport.connectors.upload_api import ProcessingMonitor
from finreport.domain.errors import (
    BackendRequestError,
    FileInFlightError,
    FileParseError,
    InvalidTransitionError,
    ProcessingFailedError,
    ProcessingTimeout,
    UnknownFileError,
    UploadError,
    UploadValidationError,
)
from finreport.domain.upload import (
    ALLOWED_TRANSITIONS,
    IN_FLIGHT_STATUSES,
    FileItem,
    FileStatus,
    ProcessingState,
    UploadSummary,
)
from finreport.logging_utils import log_event
from finreport.services.file_parser import FileParser
from finreport.storage.base import ObjectStorage
from finreport.validators.upload_validator import UploadValidator

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class UploadSession:
    """
    Owns the active file set and drives every file through the state machine.
    """

    def __init__(
        self,
        *,
        storage: ObjectStorage,
        validator: UploadValidator | None = None,
        parser: FileParser | None = None,
        monitor: ProcessingMonitor | None = None,
        settings: UploadSettings | None = None,
        sleep: SleepFunc | None = None,
        session_id: str | None = None,
    ) -> None:
        self._settings = settings or get_upload_settings()
        self._storage = storage
        self._validator = validator or UploadValidator(max_upload_bytes=self._settings.max_upload_bytes)
        self._parser = parser or FileParser()
        self._monitor = monitor
        self._sleep = sleep or asyncio.sleep
        self.id = session_id or uuid.uuid4().hex
        self._files: dict[str, FileItem] = {}
        self._contents: dict[str, bytes] = {}
        # Ids claimed by a running upload_all that may still be waiting for a slot.
        self._queued: set[str] = set()
        self._slots = asyncio.Semaphore(self._settings.max_concurrent_uploads)

    # ------------------------------------------------------------------
    # File set
    # ------------------------------------------------------------------

    @property
    def files(self) -> list[FileItem]:
        return list(self._files.values())

    @property
    def has_successful_upload(self) -> bool:
        return any(item.status == FileStatus.SUCCESS for item in self._files.values())

    @property
    def all_files_complete(self) -> bool:
        """
        True when every file that has not failed reached ``success``.
        """

        candidates = [item for item in self._files.values() if item.status != FileStatus.ERROR]
        return bool(candidates) and all(item.status == FileStatus.SUCCESS for item in candidates)

    def get(self, file_id: str) -> FileItem:
        item = self._files.get(file_id)
        if item is None:
            raise UnknownFileError(f"File '{file_id}' is not part of this upload session.")
        return item

    def add_file(self, *, name: str, content: bytes, mime_type: str | None = None) -> FileItem:
        """
        Screen a newly selected file and add it to the session.

        A file failing the type/size screen is still added, directly in
        ``error`` with the specific reason, so it stays visible and removable.
        """

        item = FileItem(
            id=uuid.uuid4().hex,
            name=name,
            mime_type=mime_type or "application/octet-stream",
            size_bytes=len(content),
        )
        self._files[item.id] = item
        try:
            item.mime_type = self._validator.screen(
                file_name=name,
                content_type=mime_type,
                size_bytes=len(content),
            )
        except UploadValidationError as exc:
            self._fail(item, str(exc), reason=exc.reason)
            return item

        self._contents[item.id] = content
        log_event(
            logger,
            logging.INFO,
            "upload_file_added",
            session_id=self.id,
            file_id=item.id,
            file_name=item.name,
            mime_type=item.mime_type,
            size_bytes=item.size_bytes,
        )
        return item

    def remove_file(self, file_id: str) -> FileItem:
        item = self.get(file_id)
        if self._is_busy(item):
            raise FileInFlightError(f"File '{item.name}' is {item.status} and cannot be removed.")
        self._files.pop(file_id)
        self._contents.pop(file_id, None)
        log_event(logger, logging.INFO, "upload_file_removed", session_id=self.id, file_id=file_id)
        return item

    def _is_busy(self, item: FileItem) -> bool:
        return item.status in IN_FLIGHT_STATUSES or item.id in self._queued

    def reset(self) -> None:
        in_flight = [item.name for item in self._files.values() if self._is_busy(item)]
        if in_flight:
            raise FileInFlightError(f"Cannot reset while files are in flight: {', '.join(in_flight)}")
        self._files.clear()
        self._contents.clear()

    # ------------------------------------------------------------------
    # Upload run
    # ------------------------------------------------------------------

    async def upload_all(self) -> UploadSummary:
        """
        Upload every pending file concurrently and wait for all of them.
        """

        pending = [
            item
            for item in self._files.values()
            if item.status == FileStatus.PENDING and item.id not in self._queued
        ]
        if not pending:
            return UploadSummary(succeeded=0, failed=0, files=[])

        # Claim before the first await so an overlapping call skips these files.
        claimed = {item.id for item in pending}
        self._queued.update(claimed)
        try:
            await asyncio.gather(*(self._run_file(item) for item in pending))
        finally:
            self._queued.difference_update(claimed)

        succeeded = sum(1 for item in pending if item.status == FileStatus.SUCCESS)
        failed = sum(1 for item in pending if item.status == FileStatus.ERROR)
        log_event(
            logger,
            logging.INFO,
            "upload_run_finished",
            session_id=self.id,
            succeeded=succeeded,
            failed=failed,
        )
        return UploadSummary(succeeded=succeeded, failed=failed, files=pending)

    async def _run_file(self, item: FileItem) -> None:
        async with self._slots:
            try:
                await self._upload_file(item)
            except UploadValidationError as exc:
                self._fail(item, str(exc), reason=exc.reason)
            except (UploadError, BackendRequestError) as exc:
                self._fail(item, str(exc))
            finally:
                if item.is_terminal:
                    self._contents.pop(item.id, None)

    async def _upload_file(self, item: FileItem) -> None:
        content = self._contents[item.id]

        self._transition(item, FileStatus.VALIDATING)
        content_type = self._validator.validate(
            file_name=item.name,
            content_type=item.mime_type,
            content=content,
        )
        item.mime_type = content_type

        self._transition(item, FileStatus.UPLOADING)
        loop = asyncio.get_running_loop()

        def on_progress(percent: int) -> None:
            loop.call_soon_threadsafe(self._apply_progress, item.id, percent)

        destination = await asyncio.to_thread(
            self._storage.prepare_destination,
            file_name=item.name,
            content_type=content_type,
        )
        item.remote_key = destination.key
        stored = await asyncio.to_thread(
            self._storage.put,
            destination=destination,
            content=content,
            content_type=content_type,
            on_progress=on_progress,
        )
        self._apply_progress(item.id, 100)
        item.remote_key = stored.key
        item.remote_url = stored.url

        self._transition(item, FileStatus.PROCESSING)
        await self._attach_parsed_payload(item, content)
        await self._await_processing(item)
        self._transition(item, FileStatus.SUCCESS)

    async def _attach_parsed_payload(self, item: FileItem, content: bytes) -> None:
        if not self._settings.parse_enabled or not self._parser.supports(item.mime_type):
            return
        try:
            item.parsed_payload = await asyncio.to_thread(
                self._parser.parse,
                content=content,
                content_type=item.mime_type,
            )
        except FileParseError as exc:
            log_event(
                logger,
                logging.WARNING,
                "upload_parse_failed",
                session_id=self.id,
                file_id=item.id,
                file_name=item.name,
                error=str(exc),
            )

    async def _await_processing(self, item: FileItem) -> None:
        if self._monitor is None:
            await self._sleep(self._settings.processing_delay_seconds)
            return

        remote_key = item.remote_key or ""
        await asyncio.to_thread(
            self._monitor.notify_stored,
            remote_key,
            {"fileName": item.name, "contentType": item.mime_type, "sizeBytes": item.size_bytes},
        )

        waited = 0.0
        while True:
            status = await asyncio.to_thread(self._monitor.get_status, remote_key)
            if status.state == ProcessingState.COMPLETED:
                return
            if status.state == ProcessingState.FAILED:
                raise ProcessingFailedError(status.message or "File processing failed.")
            if waited >= self._settings.processing_timeout_seconds:
                raise ProcessingTimeout(
                    f"Processing did not finish within {self._settings.processing_timeout_seconds:g} seconds."
                )
            await self._sleep(self._settings.status_poll_seconds)
            waited += self._settings.status_poll_seconds

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    def _apply_progress(self, file_id: str, percent: int) -> None:
        item = self._files.get(file_id)
        if item is None or item.status != FileStatus.UPLOADING:
            return
        bounded = max(0, min(100, int(percent)))
        if bounded > item.progress_percent:
            item.progress_percent = bounded

    def _transition(self, item: FileItem, new_status: str, *, error: str | None = None, **fields: object) -> None:
        if new_status not in ALLOWED_TRANSITIONS[item.status]:
            raise InvalidTransitionError(f"Cannot move file '{item.name}' from {item.status} to {new_status}.")

        previous = item.status
        item.status = new_status
        if error is not None:
            item.error = error
        if new_status == FileStatus.SUCCESS:
            item.progress_percent = 100
        log_event(
            logger,
            logging.WARNING if new_status == FileStatus.ERROR else logging.INFO,
            "upload_status_changed",
            session_id=self.id,
            file_id=item.id,
            file_name=item.name,
            from_status=previous,
            to_status=new_status,
            error=error,
            **fields,
        )

    def _fail(self, item: FileItem, message: str, *, reason: str | None = None) -> None:
        if item.is_terminal:
            return
        self._transition(item, FileStatus.ERROR, error=message, reason=reason)

"""
tests/test_upload_session.py

Tests for the upload session state machine.

Async runs are driven with ``asyncio.run``; storage and the processing
monitor are in-memory stubs and sleeps are recorded instead of awaited.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any

import pytest

from finreport.config import UploadSettings
from finreport.domain.errors import (
    FileInFlightError,
    InvalidTransitionError,
    TransferError,
    UnknownFileError,
)
from finreport.domain.upload import FileStatus, ProcessingState, ProcessingStatus
from finreport.services.upload_session import UploadSession
from finreport.storage.base import ProgressCallback, StoredObject, UploadDestination

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# ---------------------------------------------------------------------------
# Stubs
# ---------------------------------------------------------------------------


class StubStorage:
    def __init__(self, *, fail_names: tuple[str, ...] = (), hold_seconds: float = 0.0) -> None:
        self.fail_names = fail_names
        self.hold_seconds = hold_seconds
        self.put_names: list[str] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def prepare_destination(self, *, file_name: str, content_type: str) -> UploadDestination:
        return UploadDestination(key=f"uploads/{file_name}", url=f"https://bucket.test/uploads/{file_name}?sig=1")

    def put(
        self,
        *,
        destination: UploadDestination,
        content: bytes,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> StoredObject:
        name = destination.key.split("/", 1)[1]
        with self._lock:
            self.put_names.append(name)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.hold_seconds:
                time.sleep(self.hold_seconds)
            if name in self.fail_names:
                raise TransferError("Failed to upload file. Please try again.")
            if on_progress is not None:
                for percent in (30, 20, 70, 100):
                    on_progress(percent)
            return StoredObject(
                key=destination.key,
                url=f"https://bucket.test/{destination.key}",
                content_type=content_type,
                size_bytes=len(content),
                stored_at=datetime.now(timezone.utc),
            )
        finally:
            with self._lock:
                self.active -= 1


class StubMonitor:
    def __init__(self, states: list[str], message: str | None = None) -> None:
        self.states = states
        self.message = message
        self.notified: list[tuple[str, dict[str, Any]]] = []
        self.polls = 0

    def notify_stored(self, remote_key: str, metadata: dict[str, Any] | None = None) -> None:
        self.notified.append((remote_key, dict(metadata or {})))

    def get_status(self, remote_key: str) -> ProcessingStatus:
        self.polls += 1
        state = self.states.pop(0) if self.states else ProcessingState.PROCESSING
        return ProcessingStatus(state=state, message=self.message)


SETTINGS = UploadSettings(
    max_upload_bytes=1024,
    max_concurrent_uploads=2,
    processing_delay_seconds=0.0,
    status_poll_seconds=0.5,
    processing_timeout_seconds=1.0,
    parse_enabled=True,
)


@pytest.fixture()
def slept() -> list[float]:
    return []


def _session(
    slept: list[float],
    *,
    storage: StubStorage | None = None,
    monitor: StubMonitor | None = None,
    settings: UploadSettings = SETTINGS,
) -> UploadSession:
    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    return UploadSession(
        storage=storage or StubStorage(),
        monitor=monitor,
        settings=settings,
        sleep=fake_sleep,
    )


def _status_trail(caplog: pytest.LogCaptureFixture, file_id: str) -> list[str]:
    trail: list[str] = []
    for record in caplog.records:
        try:
            payload = json.loads(record.getMessage())
        except ValueError:
            continue
        if payload.get("event") == "upload_status_changed" and payload.get("file_id") == file_id:
            trail.append(payload["to_status"])
    return trail


# ---------------------------------------------------------------------------
# Adding and screening
# ---------------------------------------------------------------------------


class TestAddFile:
    def test_valid_file_is_pending(self, slept: list[float]) -> None:
        session = _session(slept)

        item = session.add_file(name="q1.csv", content=b"a,b\n1,2\n", mime_type="text/csv")

        assert item.status == FileStatus.PENDING
        assert item.size_bytes == 8
        assert session.files == [item]

    def test_oversized_file_goes_straight_to_error(
        self,
        slept: list[float],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        storage = StubStorage()
        session = _session(slept, storage=storage)

        with caplog.at_level(logging.INFO, logger="finreport.services.upload_session"):
            item = session.add_file(name="big.pdf", content=b"x" * 2048, mime_type="application/pdf")
            asyncio.run(session.upload_all())

        assert item.status == FileStatus.ERROR
        assert "exceeds the maximum limit" in (item.error or "")
        assert _status_trail(caplog, item.id) == [FileStatus.ERROR]
        assert storage.put_names == []

    def test_disallowed_type_is_rejected_with_type_message(self, slept: list[float]) -> None:
        item = _session(slept).add_file(name="cat.png", content=b"png", mime_type="image/png")

        assert item.status == FileStatus.ERROR
        assert item.error == "Invalid file type. Please upload PDF, JSON, Excel, or CSV files."


# ---------------------------------------------------------------------------
# Upload runs
# ---------------------------------------------------------------------------


class TestUploadAll:
    def test_valid_file_walks_every_state(
        self,
        slept: list[float],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        session = _session(slept)
        item = session.add_file(name="q1.csv", content=b"year,revenue\n2024,10\n", mime_type="text/csv")

        with caplog.at_level(logging.INFO, logger="finreport.services.upload_session"):
            summary = asyncio.run(session.upload_all())

        assert _status_trail(caplog, item.id) == [
            FileStatus.VALIDATING,
            FileStatus.UPLOADING,
            FileStatus.PROCESSING,
            FileStatus.SUCCESS,
        ]
        assert summary.succeeded == 1
        assert summary.failed == 0
        assert item.status == FileStatus.SUCCESS
        assert item.remote_url == "https://bucket.test/uploads/q1.csv"
        assert item.remote_key == "uploads/q1.csv"
        assert item.progress_percent == 100
        assert item.parsed_payload == [{"year": "2024", "revenue": "10"}]
        assert slept == [0.0]
        assert session.has_successful_upload
        assert session.all_files_complete

    def test_transfer_error_marks_only_that_file(self, slept: list[float]) -> None:
        storage = StubStorage(fail_names=("bad.csv",))
        session = _session(slept, storage=storage)
        good = session.add_file(name="good.csv", content=b"a\n1\n", mime_type="text/csv")
        bad = session.add_file(name="bad.csv", content=b"a\n1\n", mime_type="text/csv")

        summary = asyncio.run(session.upload_all())

        assert (summary.succeeded, summary.failed) == (1, 1)
        assert good.status == FileStatus.SUCCESS
        assert bad.status == FileStatus.ERROR
        assert bad.error == "Failed to upload file. Please try again."
        assert bad.remote_url is None
        assert session.all_files_complete

    def test_spreadsheet_extension_mismatch_fails_in_validation(self, slept: list[float]) -> None:
        storage = StubStorage()
        session = _session(slept, storage=storage)
        item = session.add_file(name="ledger.txt", content=b"PK", mime_type=XLSX)

        assert item.status == FileStatus.PENDING
        asyncio.run(session.upload_all())

        assert item.status == FileStatus.ERROR
        assert "Only .xlsx and .xls files are allowed" in (item.error or "")
        assert storage.put_names == []

    def test_parse_failure_does_not_fail_upload(self, slept: list[float]) -> None:
        session = _session(slept)
        item = session.add_file(name="broken.json", content=b"{not json", mime_type="application/json")

        asyncio.run(session.upload_all())

        assert item.status == FileStatus.SUCCESS
        assert item.parsed_payload is None

    def test_pdf_is_uploaded_without_parsing(self, slept: list[float]) -> None:
        session = _session(slept)
        item = session.add_file(name="statement.pdf", content=b"%PDF-1.7", mime_type="application/pdf")

        asyncio.run(session.upload_all())

        assert item.status == FileStatus.SUCCESS
        assert item.parsed_payload is None

    def test_concurrent_transfers_are_bounded(self, slept: list[float]) -> None:
        storage = StubStorage(hold_seconds=0.05)
        session = _session(slept, storage=storage)
        for index in range(5):
            session.add_file(name=f"f{index}.json", content=b"{}", mime_type="application/json")

        summary = asyncio.run(session.upload_all())

        assert summary.succeeded == 5
        assert storage.max_active <= SETTINGS.max_concurrent_uploads

    def test_second_run_skips_terminal_files(self, slept: list[float]) -> None:
        storage = StubStorage()
        session = _session(slept, storage=storage)
        session.add_file(name="a.json", content=b"{}", mime_type="application/json")

        asyncio.run(session.upload_all())
        summary = asyncio.run(session.upload_all())

        assert (summary.succeeded, summary.failed) == (0, 0)
        assert storage.put_names == ["a.json"]

    def test_overlapping_runs_upload_each_file_once(self, slept: list[float]) -> None:
        storage = StubStorage(hold_seconds=0.02)
        settings = UploadSettings(max_upload_bytes=1024, max_concurrent_uploads=1, processing_delay_seconds=0.0)
        session = _session(slept, storage=storage, settings=settings)
        first = session.add_file(name="a.pdf", content=b"%PDF-a", mime_type="application/pdf")
        second = session.add_file(name="b.pdf", content=b"%PDF-b", mime_type="application/pdf")

        async def run_twice() -> list[Any]:
            return await asyncio.gather(session.upload_all(), session.upload_all())

        summaries = asyncio.run(run_twice())

        assert sorted((summary.succeeded, summary.failed) for summary in summaries) == [(0, 0), (2, 0)]
        assert first.status == FileStatus.SUCCESS
        assert second.status == FileStatus.SUCCESS
        assert sorted(storage.put_names) == ["a.pdf", "b.pdf"]
        assert storage.max_active == 1

    def test_queued_file_cannot_be_removed_or_reset(self, slept: list[float]) -> None:
        settings = UploadSettings(max_upload_bytes=1024, max_concurrent_uploads=1, processing_delay_seconds=0.0)
        session = _session(slept, storage=StubStorage(hold_seconds=0.02), settings=settings)
        session.add_file(name="a.pdf", content=b"%PDF-a", mime_type="application/pdf")
        waiting = session.add_file(name="b.pdf", content=b"%PDF-b", mime_type="application/pdf")

        async def remove_while_running() -> None:
            run = asyncio.create_task(session.upload_all())
            await asyncio.sleep(0)
            with pytest.raises(FileInFlightError):
                session.remove_file(waiting.id)
            with pytest.raises(FileInFlightError):
                session.reset()
            await run

        asyncio.run(remove_while_running())

        assert waiting.status == FileStatus.SUCCESS
        session.remove_file(waiting.id)


# ---------------------------------------------------------------------------
# Processing monitor
# ---------------------------------------------------------------------------


class TestProcessingMonitor:
    def test_polls_until_completed(self, slept: list[float]) -> None:
        monitor = StubMonitor([ProcessingState.PROCESSING, ProcessingState.COMPLETED])
        session = _session(slept, monitor=monitor)
        item = session.add_file(name="a.json", content=b"{}", mime_type="application/json")

        asyncio.run(session.upload_all())

        assert item.status == FileStatus.SUCCESS
        assert monitor.notified == [
            ("uploads/a.json", {"fileName": "a.json", "contentType": "application/json", "sizeBytes": 2})
        ]
        assert monitor.polls == 2
        assert slept == [0.5]

    def test_failed_processing_marks_error(self, slept: list[float]) -> None:
        monitor = StubMonitor([ProcessingState.FAILED], message="Unreadable statement")
        session = _session(slept, monitor=monitor)
        item = session.add_file(name="a.json", content=b"{}", mime_type="application/json")

        asyncio.run(session.upload_all())

        assert item.status == FileStatus.ERROR
        assert item.error == "Unreadable statement"
        assert item.remote_url == "https://bucket.test/uploads/a.json"

    def test_timeout_marks_error(self, slept: list[float]) -> None:
        monitor = StubMonitor([])
        session = _session(slept, monitor=monitor)
        item = session.add_file(name="a.json", content=b"{}", mime_type="application/json")

        asyncio.run(session.upload_all())

        assert item.status == FileStatus.ERROR
        assert "did not finish within 1 seconds" in (item.error or "")
        assert slept == [0.5, 0.5]


# ---------------------------------------------------------------------------
# Removal and state rules
# ---------------------------------------------------------------------------


class TestRemovalAndStateRules:
    def test_remove_pending_and_error_files(self, slept: list[float]) -> None:
        session = _session(slept)
        pending = session.add_file(name="a.csv", content=b"a", mime_type="text/csv")
        failed = session.add_file(name="a.png", content=b"a", mime_type="image/png")

        session.remove_file(pending.id)
        session.remove_file(failed.id)

        assert session.files == []

    def test_remove_unknown_file_raises(self, slept: list[float]) -> None:
        with pytest.raises(UnknownFileError):
            _session(slept).remove_file("missing")

    def test_in_flight_file_cannot_be_removed_or_reset(self, slept: list[float]) -> None:
        session = _session(slept)
        item = session.add_file(name="a.csv", content=b"a", mime_type="text/csv")
        item.status = FileStatus.UPLOADING

        with pytest.raises(FileInFlightError):
            session.remove_file(item.id)
        with pytest.raises(FileInFlightError):
            session.reset()

    def test_reset_clears_files(self, slept: list[float]) -> None:
        session = _session(slept)
        session.add_file(name="a.csv", content=b"a", mime_type="text/csv")

        session.reset()

        assert session.files == []
        assert not session.all_files_complete

    def test_terminal_states_reject_transitions(self, slept: list[float]) -> None:
        session = _session(slept)
        item = session.add_file(name="a.png", content=b"a", mime_type="image/png")

        with pytest.raises(InvalidTransitionError):
            session._transition(item, FileStatus.UPLOADING)

    def test_progress_never_decreases(self, slept: list[float]) -> None:
        session = _session(slept)
        item = session.add_file(name="a.csv", content=b"a", mime_type="text/csv")
        item.status = FileStatus.UPLOADING

        session._apply_progress(item.id, 60)
        session._apply_progress(item.id, 40)
        session._apply_progress(item.id, 250)

        assert item.progress_percent == 100

    def test_all_files_complete_ignores_errors_but_needs_a_success(self, slept: list[float]) -> None:
        session = _session(slept)
        session.add_file(name="a.png", content=b"a", mime_type="image/png")

        assert not session.all_files_complete
        assert not session.has_successful_upload

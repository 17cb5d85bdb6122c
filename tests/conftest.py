"""
tests/conftest.py

Shared fakes for HTTP collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
import requests

from finreport.config import ExternalHTTPSettings


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, *, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ""

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)  # type: ignore[arg-type]


@dataclass
class FakeSession:
    """
    Replays queued responses and records every request.
    """

    responses: list[Any] = field(default_factory=list)
    calls: list[dict[str, Any]] = field(default_factory=list)

    def request(self, **kwargs: Any) -> FakeResponse:
        data = kwargs.get("data")
        if data is not None and not isinstance(data, (bytes, str)):
            kwargs["data"] = b"".join(data)
        self.calls.append(kwargs)
        if not self.responses:
            raise AssertionError("FakeSession received an unexpected request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def http_settings() -> ExternalHTTPSettings:
    return ExternalHTTPSettings(
        timeout_seconds=1.0,
        max_retries=2,
        backoff_initial_seconds=0.1,
        backoff_multiplier=2.0,
        rate_limit_per_second=0.0,
    )


@pytest.fixture()
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace backoff sleeps with a recorder."""
    slept: list[float] = []
    monkeypatch.setattr("finreport.connectors.base.time.sleep", slept.append)
    return slept

"""
finreport/connectors/base.py

Shared HTTP mechanics for backend collaborators.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from finreport.config import ExternalHTTPSettings
from finreport.domain.errors import BackendRequestError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class BaseHTTPClient:
    """
    JSON-over-HTTP client with rate limiting and exponential backoff.

    Subclasses own the request shapes; this class owns the transport loop.
    """

    service: str

    def __init__(
        self,
        *,
        service: str,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.service = service
        self._session = session or requests.Session()
        self._timeout_seconds = http_settings.timeout_seconds
        self._max_retries = http_settings.max_retries
        self._backoff_initial_seconds = http_settings.backoff_initial_seconds
        self._backoff_multiplier = http_settings.backoff_multiplier
        rate = http_settings.rate_limit_per_second
        self._min_interval = 1.0 / rate if rate > 0 else 0.0
        self._last_sent_at = 0.0

    def _request_json(
        self,
        *,
        method: str,
        url: str,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Execute an HTTP request and return parsed JSON with retry support.
        """

        response = self._request(
            method=method,
            url=url,
            json_body=json_body,
            params=params,
            headers=headers,
        )
        try:
            return response.json()
        except ValueError as exc:
            raise BackendRequestError(f"{self.service}: response was not valid JSON.") from exc

    def _request(
        self,
        *,
        method: str,
        url: str,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """
        Send one logical request, retrying transient failures.

        429/5xx answers, timeouts and dropped connections are retried up to
        ``max_retries`` times; any other HTTP error fails immediately.
        """

        attempts = self._max_retries + 1
        failure: Exception | None = None
        for attempt in range(attempts):
            self._apply_rate_limit()
            try:
                response = self._session.request(
                    method=method,
                    url=url,
                    json=json_body,
                    params=params,
                    headers=headers,
                    timeout=self._timeout_seconds,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                failure = exc
            else:
                if response.status_code not in RETRYABLE_STATUS_CODES:
                    self._raise_for_status(response, url=url)
                    return response
                failure = requests.HTTPError(f"HTTP {response.status_code}", response=response)

            if attempt + 1 < attempts:
                delay = self._backoff_delay(attempt)
                logger.warning(
                    "%s request to %s failed (%s); retry %s/%s in %.2fs",
                    self.service,
                    url,
                    failure,
                    attempt + 1,
                    self._max_retries,
                    delay,
                )
                time.sleep(delay)

        logger.error("%s request to %s gave up after %s attempts: %s", self.service, url, attempts, failure)
        raise BackendRequestError(f"{self.service}: request failed after retries.") from failure

    def _raise_for_status(self, response: requests.Response, *, url: str) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            logger.error("%s request to %s rejected with status %s", self.service, url, response.status_code)
            raise BackendRequestError(f"{self.service}: non-retryable request failure.") from exc

    def _backoff_delay(self, attempt: int) -> float:
        return self._backoff_initial_seconds * (self._backoff_multiplier**attempt)

    def _apply_rate_limit(self) -> None:
        if self._min_interval <= 0:
            return
        wait = self._min_interval - (time.monotonic() - self._last_sent_at)
        if wait > 0:
            time.sleep(wait)
        self._last_sent_at = time.monotonic()

"""
finreport/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ALLOWED_STORAGE_BACKENDS = {"presigned", "local"}


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class UploadSettings:
    """
    Runtime settings for upload sessions.

    ``max_upload_bytes`` is the single size ceiling applied by every upload
    entry point.
    """

    max_upload_bytes: int = 50 * 1024 * 1024
    max_concurrent_uploads: int = 3
    processing_delay_seconds: float = 2.0
    status_poll_seconds: float = 2.0
    processing_timeout_seconds: float = 120.0
    parse_enabled: bool = True


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for backend collaborators.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class BackendSettings:
    """
    Managed GraphQL backend settings.
    """

    graphql_endpoint: str | None = None
    api_key: str | None = None
    list_limit: int = 100


@dataclass(frozen=True)
class UploadAPISettings:
    """
    Upload API gateway settings (presigned URLs, completion, status).
    """

    base_url: str | None = None
    api_key: str | None = None


@dataclass(frozen=True)
class StorageSettings:
    """
    Object storage settings.
    """

    backend: str = "presigned"
    local_root_dir: str = "data/uploads"
    folder: str = ""
    public_base_url: str | None = None


@lru_cache(maxsize=1)
def get_upload_settings() -> UploadSettings:
    """
    Return cached upload session settings from environment variables.
    """

    return UploadSettings(
        max_upload_bytes=max(1, _get_int_env("UPLOAD_MAX_BYTES", 50 * 1024 * 1024)),
        max_concurrent_uploads=max(1, _get_int_env("UPLOAD_MAX_CONCURRENT", 3)),
        processing_delay_seconds=max(0.0, _get_float_env("UPLOAD_PROCESSING_DELAY_SECONDS", 2.0)),
        status_poll_seconds=max(0.1, _get_float_env("UPLOAD_STATUS_POLL_SECONDS", 2.0)),
        processing_timeout_seconds=max(1.0, _get_float_env("UPLOAD_PROCESSING_TIMEOUT_SECONDS", 120.0)),
        parse_enabled=_get_bool_env("UPLOAD_PARSE_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared collaborator HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    """
    Return GraphQL backend settings from environment variables.
    """

    return BackendSettings(
        graphql_endpoint=_get_optional_str_env("GRAPHQL_ENDPOINT"),
        api_key=_get_optional_str_env("GRAPHQL_API_KEY"),
        list_limit=max(1, _get_int_env("GRAPHQL_LIST_LIMIT", 100)),
    )


@lru_cache(maxsize=1)
def get_upload_api_settings() -> UploadAPISettings:
    """
    Return upload API gateway settings from environment variables.
    """

    return UploadAPISettings(
        base_url=_get_optional_str_env("UPLOAD_API_BASE_URL"),
        api_key=_get_optional_str_env("UPLOAD_API_KEY"),
    )


@lru_cache(maxsize=1)
def get_storage_settings() -> StorageSettings:
    """
    Return object storage settings from environment variables.

    Raises RuntimeError for an unknown STORAGE_BACKEND so a typo never falls
    back silently to local disk.
    """

    backend = _get_str_env("STORAGE_BACKEND", "presigned").lower()
    if backend not in ALLOWED_STORAGE_BACKENDS:
        raise RuntimeError(
            f"STORAGE_BACKEND '{backend}' is not valid. "
            f"Allowed values: {sorted(ALLOWED_STORAGE_BACKENDS)}."
        )
    return StorageSettings(
        backend=backend,
        local_root_dir=_get_str_env("UPLOAD_STORAGE_DIR", "data/uploads"),
        folder=_get_str_env("STORAGE_FOLDER", "").strip("/"),
        public_base_url=_get_optional_str_env("STORAGE_PUBLIC_BASE_URL"),
    )

"""
Structured logging helpers for upload workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON; ``None`` fields are omitted.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))

"""
Structured logging helpers for import and OCR workflows.
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
    Emit one structured log line as compact JSON.

    Fields with a ``None`` value are dropped so tenant-less jobs stay terse.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event}
    payload.update({key: value for key, value in fields.items() if value is not None})
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))

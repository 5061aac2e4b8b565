"""
app/logging_utils.py

Structured logging helpers for load-profile workflows.

Events are single-line JSON so a file's processing history can be grepped by
event name, source file or status.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit ``{"event": event, **fields}`` as one compact JSON line.

    Values that are not JSON-native (dates, enums) are stringified.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


@contextmanager
def timed_event(
    logger: logging.Logger,
    event: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> Iterator[dict[str, Any]]:
    """
    Log ``event`` with an ``elapsed_ms`` field when the block completes.

    The yielded dict collects extra fields; setting its ``"level"`` key
    changes the level the event is logged at.
    """

    started = time.perf_counter()
    extra: dict[str, Any] = dict(fields)
    yield extra
    extra["elapsed_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    log_event(logger, extra.pop("level", level), event, **extra)

"""
app/services/batch_processor.py

Batch execution of the load-profile pipeline.

Each file is one unit of work. Cancellation is checked between files, never
inside one: a run that has started always finishes.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from app.failure_codes import CRITICAL_FAILURES, RECONFIGURABLE_FAILURES
from app.logging_utils import log_event
from load_profile.models import ParseConfigOverride, ProcessingConfig
from load_profile.pipeline import ProfileResult

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe, one-way cancellation signal shared with a batch run.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class BatchItemStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class BatchItem:
    """
    One file to process. ``processing_config`` is the meter's stored
    column and unit choice, filled in before the run when a session is given.
    """

    name: str
    text: str
    meter_name: str | None = None
    override: ParseConfigOverride | None = None
    processing_config: ProcessingConfig | None = None


@dataclass(frozen=True)
class BatchItemResult:
    """
    Outcome of one file. ``skipped`` marks files that need a different
    column or unit choice rather than a fix to the file itself.
    """

    name: str
    status: BatchItemStatus
    meter_name: str | None = None
    result: ProfileResult | None = None
    failure_code: str | None = None
    reason: str | None = None

    @property
    def needs_reconfiguration(self) -> bool:
        return self.failure_code in RECONFIGURABLE_FAILURES


@dataclass(frozen=True)
class BatchSummary:
    results: tuple[BatchItemResult, ...]

    def count(self, status: BatchItemStatus) -> int:
        return sum(1 for item in self.results if item.status is status)

    @property
    def succeeded(self) -> int:
        return self.count(BatchItemStatus.SUCCESS)

    @property
    def cancelled(self) -> bool:
        return self.count(BatchItemStatus.CANCELLED) > 0

    def to_dict(self) -> dict[str, object]:
        return {
            "total": len(self.results),
            **{status.value: self.count(status) for status in BatchItemStatus},
        }


class BatchProcessor:
    """
    Runs a per-file processor over many files.

    Responsibilities:
        - Check the cancellation token before each file.
        - Run files sequentially or on a thread pool.
        - Classify each outcome as success, failed, skipped or cancelled.

    Not responsible for:
        - Persistence (results are returned to the caller).
        - Interrupting a file that is already running.
    """

    def __init__(
        self,
        processor: Callable[[BatchItem], ProfileResult],
        *,
        max_workers: int = 1,
    ) -> None:
        self._processor = processor
        self._max_workers = max(1, max_workers)

    def run(
        self,
        items: Sequence[BatchItem],
        token: CancellationToken | None = None,
    ) -> BatchSummary:
        token = token or CancellationToken()
        if self._max_workers == 1:
            results = [self._run_one(item, token) for item in items]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                results = list(executor.map(lambda item: self._run_one(item, token), items))

        summary = BatchSummary(results=tuple(results))
        log_event(logger, logging.INFO, "load_profile_batch_finished", **summary.to_dict())
        return summary

    def _run_one(self, item: BatchItem, token: CancellationToken) -> BatchItemResult:
        if token.cancelled:
            return BatchItemResult(name=item.name, status=BatchItemStatus.CANCELLED, meter_name=item.meter_name)

        try:
            result = self._processor(item)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Batch item failed name=%r: %s", item.name, exc)
            return BatchItemResult(
                name=item.name,
                status=BatchItemStatus.FAILED,
                meter_name=item.meter_name,
                failure_code="unexpected_error",
                reason=str(exc),
            )

        if result.ok:
            status = BatchItemStatus.SUCCESS
        elif result.status.value in CRITICAL_FAILURES:
            status = BatchItemStatus.FAILED
        else:
            status = BatchItemStatus.SKIPPED

        return BatchItemResult(
            name=item.name,
            status=status,
            meter_name=item.meter_name,
            result=result,
            failure_code=None if result.ok else result.status.value,
            reason=result.reason,
        )

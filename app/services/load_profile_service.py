"""
app/services/load_profile_service.py

Service layer for load-profile processing and storage.

The pipeline itself is pure; this module reads uploads, reuses a meter's
stored processing config on rerun, maps failed results to exceptions and
persists successful profiles with replace semantics.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import PurePath
from typing import Any, Iterable

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import ProfilingSettings, get_profiling_settings
from app.failure_codes import RECONFIGURABLE_FAILURES
from app.logging_utils import timed_event
from app.services.batch_processor import (
    BatchItem,
    BatchItemResult,
    BatchItemStatus,
    BatchProcessor,
    BatchSummary,
    CancellationToken,
)
from db.repositories.load_profile_repository import LoadProfileRepository
from load_profile.models import ParseConfigOverride, ParsedPreview, ProcessingConfig
from load_profile.pipeline import ProfileResult, build_load_profile, detect_format, preview

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LoadProfileProcessingError(ValueError):
    """
    Raised when a file cannot be turned into a storable load profile.
    """

    def __init__(self, *, code: str, reason: str, result: ProfileResult | None = None) -> None:
        super().__init__(reason)
        self.code = code
        self.reason = reason
        self.result = result

    @property
    def needs_reconfiguration(self) -> bool:
        return self.code in RECONFIGURABLE_FAILURES

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "code": self.code,
            "reason": self.reason,
            "needs_reconfiguration": self.needs_reconfiguration,
        }
        if self.result is not None:
            payload["warnings"] = list(self.result.warnings)
            payload["row_stats"] = self.result.row_stats.to_dict()
            payload["value_column"] = self.result.value_column
        return payload


class LoadProfilePersistenceError(RuntimeError):
    """
    Raised when a valid profile cannot be persisted.
    """


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StoredProfile:
    meter_name: str
    result: ProfileResult


class LoadProfileService:
    """
    Coordinates decoding, pipeline invocation and persistence.
    """

    def __init__(self, *, settings: ProfilingSettings) -> None:
        self._settings = settings
        self._pipeline_settings = settings.to_pipeline_settings()

    @property
    def settings(self) -> ProfilingSettings:
        return self._settings

    @staticmethod
    def read_upload(upload_file: UploadFile) -> str:
        """
        Decode an uploaded export as UTF-8, tolerating a byte-order mark.
        """
        raw_file = upload_file.file
        raw_file.seek(0)
        payload = raw_file.read()
        try:
            return payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise LoadProfileProcessingError(
                code="invalid_encoding",
                reason="Meter export must be UTF-8 encoded.",
            ) from exc

    def preview(self, text: str, override: ParseConfigOverride | None = None) -> ParsedPreview:
        try:
            return preview(
                text,
                override=override,
                max_rows=self._settings.preview_rows,
                settings=self._pipeline_settings,
            )
        except ValueError as exc:
            raise LoadProfileProcessingError(code="invalid_config", reason=str(exc)) from exc

    def process_text(
        self,
        text: str,
        *,
        override: ParseConfigOverride | None = None,
        processing_config: ProcessingConfig | None = None,
        source: str | None = None,
    ) -> ProfileResult:
        """
        Run the pipeline and log the outcome. Never raises for bad input.
        """
        with timed_event(logger, "load_profile_processed", source=source) as event:
            result = build_load_profile(
                text,
                override=override,
                processing_config=processing_config,
                settings=self._pipeline_settings,
            )
            event.update(
                level=logging.INFO if result.ok else logging.WARNING,
                status=result.status.value,
                reason=result.reason,
                value_column=result.value_column,
                data_points=result.profile.data_points,
                interval_minutes=result.profile.detected_interval_minutes,
                rows=result.row_stats.to_dict(),
                warnings=list(result.warnings),
            )
        return result

    def process_and_store(
        self,
        *,
        text: str,
        db: Session,
        meter_name: str | None = None,
        source_filename: str | None = None,
        override: ParseConfigOverride | None = None,
    ) -> StoredProfile:
        """
        Process one export and replace the meter's stored profile.

        The meter name is the explicit one, else the preamble name, else the
        file stem. When that meter already has a stored processing config and
        the caller did not pick a value column, the stored column and unit are
        reused.

        Raises:
            LoadProfileProcessingError: The result is not OK or no meter
                name can be determined.
            LoadProfilePersistenceError: The database write failed.
        """
        resolved_name = self.resolve_meter_name(text, meter_name, source_filename)
        stored_config = _stored_config(LoadProfileRepository(db), resolved_name, override)

        result = self.process_text(
            text,
            override=override,
            processing_config=stored_config,
            source=source_filename,
        )
        if not result.ok:
            raise LoadProfileProcessingError(
                code=result.status.value,
                reason=result.reason or "Load profile could not be built.",
                result=result,
            )

        if resolved_name is None:
            raise LoadProfileProcessingError(
                code="missing_meter_name",
                reason="No meter name supplied and none found in the file.",
                result=result,
            )

        self.store_result(db=db, meter_name=resolved_name, result=result, source_filename=source_filename)
        return StoredProfile(meter_name=resolved_name, result=result)

    def store_result(
        self,
        *,
        db: Session,
        meter_name: str,
        result: ProfileResult,
        source_filename: str | None = None,
    ) -> None:
        if not result.ok:
            raise LoadProfileProcessingError(
                code=result.status.value,
                reason=result.reason or "Load profile could not be built.",
                result=result,
            )
        repository = LoadProfileRepository(db)
        try:
            repository.replace_profile(
                meter_name=meter_name,
                profile=result.profile,
                processing_config=result.processing_config(),
                source_filename=source_filename,
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Failed to persist load profile meter=%r", meter_name)
            raise LoadProfilePersistenceError("Failed to persist load profile.") from exc

    def process_batch(
        self,
        items: Iterable[BatchItem],
        *,
        db: Session | None = None,
        token: CancellationToken | None = None,
        parallel: bool = False,
    ) -> BatchSummary:
        """
        Process many exports, optionally storing each successful profile.

        Stored processing configs are read and profiles are written on the
        calling thread; only pipeline runs go to worker threads. A failed
        write marks that item ``persistence_error`` and the batch carries on.
        """
        batch = list(items)
        if db is not None:
            repository = LoadProfileRepository(db)
            prepared = []
            for item in batch:
                name = self.resolve_meter_name(item.text, item.meter_name, item.name)
                prepared.append(
                    replace(
                        item,
                        meter_name=name,
                        processing_config=_stored_config(repository, name, item.override),
                    )
                )
            batch = prepared

        processor = BatchProcessor(
            self._process_item,
            max_workers=self._settings.batch_max_workers if parallel else 1,
        )
        summary = processor.run(batch, token=token)
        if db is None:
            return summary

        results: list[BatchItemResult] = []
        for item_result in summary.results:
            if item_result.status is BatchItemStatus.SUCCESS and item_result.result is not None:
                item_result = self._store_batch_result(db, item_result)
            results.append(item_result)
        return BatchSummary(results=tuple(results))

    def resolve_meter_name(
        self,
        text: str,
        meter_name: str | None,
        source_filename: str | None,
    ) -> str | None:
        """
        Explicit name, else the preamble meter name, else the file stem.
        """
        if meter_name and meter_name.strip():
            return meter_name.strip()
        detection = detect_format(text, settings=self._pipeline_settings)
        return _fallback_meter_name(detection.preamble_meter_name, source_filename)

    def _store_batch_result(self, db: Session, item_result: BatchItemResult) -> BatchItemResult:
        if item_result.meter_name is None:
            return replace(
                item_result,
                status=BatchItemStatus.FAILED,
                failure_code="missing_meter_name",
                reason="No meter name supplied and none found in the file.",
            )
        try:
            self.store_result(
                db=db,
                meter_name=item_result.meter_name,
                result=item_result.result,
                source_filename=item_result.name,
            )
        except LoadProfilePersistenceError as exc:
            return replace(
                item_result,
                status=BatchItemStatus.FAILED,
                failure_code="persistence_error",
                reason=str(exc),
            )
        return item_result

    def _process_item(self, item: BatchItem) -> ProfileResult:
        return self.process_text(
            item.text,
            override=item.override,
            processing_config=item.processing_config,
            source=item.name,
        )


def _stored_config(
    repository: LoadProfileRepository,
    meter_name: str | None,
    override: ParseConfigOverride | None,
) -> ProcessingConfig | None:
    if meter_name is None or (override is not None and override.value_column_index is not None):
        return None
    return repository.get_processing_config(meter_name)


def _fallback_meter_name(preamble_name: str | None, source_filename: str | None) -> str | None:
    if preamble_name and preamble_name.strip():
        return preamble_name.strip()
    if source_filename:
        stem = PurePath(source_filename).stem.strip()
        return stem or None
    return None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_load_profile_service() -> LoadProfileService:
    """
    Build and cache the load-profile service with env-driven settings.
    """
    return LoadProfileService(settings=get_profiling_settings())

"""
db/repositories/load_profile_repository.py

Persistence layer for LoadProfileRecord rows.

The caller controls commit/rollback; this repository never commits on its
own.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.load_profile import LoadProfileRecord
from db.repositories.errors import InvalidProfilePayloadError
from load_profile.constants import HOURS_PER_DAY
from load_profile.models import LoadProfile, ProcessingConfig


class LoadProfileRepository:
    """
    Repository for writing and querying LoadProfileRecord rows.

    Replace semantics: saving a profile for a meter that already has one
    overwrites every stored field. Nothing is merged.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def replace_profile(
        self,
        *,
        meter_name: str,
        profile: LoadProfile,
        processing_config: ProcessingConfig | None = None,
        source_filename: str | None = None,
    ) -> LoadProfileRecord:
        """
        Insert or overwrite the stored profile for ``meter_name``.

        Returns the ORM instance, flushed but not committed.

        Raises:
            InvalidProfilePayloadError: Empty meter name or a profile vector
                that does not hold 24 values.
        """
        name = meter_name.strip()
        if not name:
            raise InvalidProfilePayloadError("meter_name must not be empty.")
        for label, vector in (
            ("weekday_profile", profile.weekday_profile),
            ("weekend_profile", profile.weekend_profile),
        ):
            if len(vector) != HOURS_PER_DAY:
                raise InvalidProfilePayloadError(
                    f"{label} must hold {HOURS_PER_DAY} values, got {len(vector)}."
                )

        record = self.get_by_meter_name(name)
        if record is None:
            record = LoadProfileRecord(meter_name=name)
            self._session.add(record)

        record.source_filename = source_filename
        record.weekday_profile = list(profile.weekday_profile)
        record.weekend_profile = list(profile.weekend_profile)
        record.weekday_days = profile.weekday_days
        record.weekend_days = profile.weekend_days
        record.peak_kw = profile.peak_kw
        record.avg_kw = profile.avg_kw
        record.total_kwh = profile.total_kwh
        record.load_factor = profile.load_factor
        record.data_points = profile.data_points
        record.date_range_start = profile.date_range_start
        record.date_range_end = profile.date_range_end
        record.detected_interval_minutes = profile.detected_interval_minutes
        record.processing_config = processing_config.to_dict() if processing_config else None
        record.processed_at = datetime.now(timezone.utc)

        self._session.flush()
        return record

    def delete_by_meter_name(self, meter_name: str) -> bool:
        record = self.get_by_meter_name(meter_name)
        if record is None:
            return False
        self._session.delete(record)
        self._session.flush()
        return True

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_meter_name(self, meter_name: str) -> LoadProfileRecord | None:
        stmt = select(LoadProfileRecord).where(LoadProfileRecord.meter_name == meter_name.strip())
        return self._session.scalars(stmt).one_or_none()

    def get_processing_config(self, meter_name: str) -> ProcessingConfig | None:
        """
        Stored reprocessing record for a meter, if one was saved.
        """
        record = self.get_by_meter_name(meter_name)
        if record is None or not record.processing_config:
            return None
        return ProcessingConfig.from_dict(record.processing_config)

    def list_meter_names(self) -> list[str]:
        stmt = select(LoadProfileRecord.meter_name).order_by(LoadProfileRecord.meter_name)
        return list(self._session.scalars(stmt).all())


def record_to_profile(record: LoadProfileRecord) -> LoadProfile:
    """
    Rebuild the domain LoadProfile from a stored row.
    """

    return LoadProfile(
        weekday_profile=tuple(float(v) for v in record.weekday_profile),
        weekend_profile=tuple(float(v) for v in record.weekend_profile),
        weekday_days=record.weekday_days,
        weekend_days=record.weekend_days,
        peak_kw=record.peak_kw,
        avg_kw=record.avg_kw,
        total_kwh=record.total_kwh,
        load_factor=record.load_factor,
        data_points=record.data_points,
        date_range_start=record.date_range_start,
        date_range_end=record.date_range_end,
        detected_interval_minutes=record.detected_interval_minutes,
    )

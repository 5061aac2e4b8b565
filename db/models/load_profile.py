"""
db/models/load_profile.py

Persisted output of the load-profile pipeline.
One row per meter; a rerun replaces the row.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, Float, Index, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin

_JSON = JSON().with_variant(JSONB(), "postgresql")


class LoadProfileRecord(TimestampMixin, Base):
    """
    Stores one meter's weekday/weekend hourly shape and summary statistics.

    ``weekday_profile`` and ``weekend_profile`` always hold 24 numbers.
    ``processing_config`` records the value column header and unit used so a
    rerun can reproduce the same column choice, e.g.::

        {"column": "kWh", "unit": "kWh", "voltageV": 400.0, "powerFactor": 0.9}
    """

    __tablename__ = "load_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    meter_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Meter identifier; one stored profile per meter",
    )
    source_filename: Mapped[str | None] = mapped_column(String(512), nullable=True)
    weekday_profile: Mapped[list[float]] = mapped_column(_JSON, nullable=False)
    weekend_profile: Mapped[list[float]] = mapped_column(_JSON, nullable=False)
    weekday_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekend_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    peak_kw: Mapped[float] = mapped_column(Float, nullable=False)
    avg_kw: Mapped[float] = mapped_column(Float, nullable=False)
    total_kwh: Mapped[float] = mapped_column(Float, nullable=False)
    load_factor: Mapped[float] = mapped_column(Float, nullable=False)
    data_points: Mapped[int] = mapped_column(Integer, nullable=False)
    date_range_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    date_range_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    detected_interval_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    processing_config: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("meter_name", name="uq_load_profiles_meter_name"),
        Index("ix_load_profiles_date_range_start", "date_range_start"),
    )

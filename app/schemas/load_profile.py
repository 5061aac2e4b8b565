"""
app/schemas/load_profile.py

Response schemas for load-profile endpoints.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from load_profile.models import LoadProfile, ParsedPreview
from load_profile.pipeline import ProfileResult


class FormatDetectionResponse(BaseModel):
    """
    API response model for detected file structure.
    """

    start_row: int = Field(..., ge=1)
    delimiters: list[str]
    quote_char: str | None = None
    collapse_consecutive: bool
    detected_format: str
    preamble_meter_name: str | None = None
    preamble_date_range: tuple[str, str] | None = None


class ParsedPreviewResponse(BaseModel):
    """
    API response model for a header plus truncated row sample.
    """

    headers: list[str]
    rows: list[list[str]]
    total_rows: int = Field(..., ge=0)
    detection: FormatDetectionResponse

    @classmethod
    def from_preview(cls, parsed: ParsedPreview) -> "ParsedPreviewResponse":
        detection = parsed.detection
        return cls(
            headers=list(parsed.headers),
            rows=[list(row) for row in parsed.rows],
            total_rows=parsed.total_rows,
            detection=FormatDetectionResponse(
                start_row=detection.start_row,
                delimiters=sorted(detection.delimiters.chars),
                quote_char=detection.quote_char,
                collapse_consecutive=detection.collapse_consecutive,
                detected_format=detection.detected_format.value,
                preamble_meter_name=detection.preamble_meter_name,
                preamble_date_range=detection.preamble_date_range,
            ),
        )


class LoadProfileResponse(BaseModel):
    """
    API response model for one load profile.
    """

    weekday_profile: list[float] = Field(..., min_length=24, max_length=24)
    weekend_profile: list[float] = Field(..., min_length=24, max_length=24)
    weekday_days: int = Field(..., ge=0)
    weekend_days: int = Field(..., ge=0)
    peak_kw: float = Field(..., ge=0)
    avg_kw: float = Field(..., ge=0)
    total_kwh: float = Field(..., ge=0)
    load_factor: float = Field(..., ge=0)
    data_points: int = Field(..., ge=0)
    date_range_start: date | None = None
    date_range_end: date | None = None
    detected_interval_minutes: int

    @classmethod
    def from_profile(cls, profile: LoadProfile) -> "LoadProfileResponse":
        return cls(
            weekday_profile=list(profile.weekday_profile),
            weekend_profile=list(profile.weekend_profile),
            weekday_days=profile.weekday_days,
            weekend_days=profile.weekend_days,
            peak_kw=profile.peak_kw,
            avg_kw=profile.avg_kw,
            total_kwh=profile.total_kwh,
            load_factor=profile.load_factor,
            data_points=profile.data_points,
            date_range_start=profile.date_range_start,
            date_range_end=profile.date_range_end,
            detected_interval_minutes=profile.detected_interval_minutes,
        )


class ProcessedLoadProfileResponse(BaseModel):
    """
    API response model for a processed and stored export.
    """

    meter_name: str
    value_column: str | None = None
    unit: str | None = None
    warnings: list[str] = Field(default_factory=list)
    rows_skipped: int = Field(..., ge=0)
    profile: LoadProfileResponse

    @classmethod
    def from_result(cls, meter_name: str, result: ProfileResult) -> "ProcessedLoadProfileResponse":
        return cls(
            meter_name=meter_name,
            value_column=result.value_column,
            unit=result.config.unit.value if result.config else None,
            warnings=list(result.warnings),
            rows_skipped=result.row_stats.skipped,
            profile=LoadProfileResponse.from_profile(result.profile),
        )

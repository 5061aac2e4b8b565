"""
load_profile/pipeline.py

End-to-end transform: raw export text in, tagged LoadProfile result out.

The pipeline is a pure function of (text, configuration). It performs no
I/O and holds no state between calls, so files can be processed on
independent threads without locking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Sequence

from load_profile.aggregator import aggregate
from load_profile.column_classifier import (
    Classification,
    classify,
    column_samples,
    guess_unit,
    is_cumulative_series,
)
from load_profile.constants import (
    CLASSIFIER_SAMPLE_ROWS,
    DEFAULT_POWER_FACTOR,
    DEFAULT_VOLTAGE_V,
    HEADER_SCAN_LINES,
    INTERVAL_SAMPLE_SIZE,
)
from load_profile.dates import parse_datetime
from load_profile.format_detector import detect, split_lines
from load_profile.interval import detect_interval
from load_profile.models import (
    ColumnAssignment,
    ColumnRole,
    DataPoint,
    DateOrder,
    FormatDetection,
    LoadProfile,
    NegativePolicy,
    ParseConfig,
    ParseConfigOverride,
    ParsedPreview,
    ProcessingConfig,
    Row,
)
from load_profile.numbers import parse_number
from load_profile.tokenizer import tokenize_lines
from load_profile.units import InvalidUnitError, Unit, normalize
from load_profile.validation import validate_profile

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_ROWS = 20
DEFAULT_MIN_DATA_ROWS = 10


class ProfileStatus(str, Enum):
    OK = "ok"
    EMPTY_PROFILE = "empty_profile"
    INVALID_UNIT = "invalid_unit"
    INVALID_CONFIG = "invalid_config"
    VALIDATION_FAILURE = "validation_failure"


@dataclass(frozen=True)
class PipelineSettings:
    """
    Tunables that are not part of a single file's ParseConfig.
    """

    default_voltage_v: float = DEFAULT_VOLTAGE_V
    default_power_factor: float = DEFAULT_POWER_FACTOR
    header_scan_lines: int = HEADER_SCAN_LINES
    classifier_sample_rows: int = CLASSIFIER_SAMPLE_ROWS
    interval_sample_size: int = INTERVAL_SAMPLE_SIZE
    min_data_rows: int = DEFAULT_MIN_DATA_ROWS
    date_order: DateOrder = DateOrder.DMY


@dataclass
class RowStats:
    """
    Counts of data rows seen and why rows were dropped.
    """

    total: int = 0
    accepted: int = 0
    missing_timestamp: int = 0
    missing_value: int = 0
    negative: int = 0

    @property
    def skipped(self) -> int:
        return self.total - self.accepted

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "accepted": self.accepted,
            "skipped": self.skipped,
            "missing_timestamp": self.missing_timestamp,
            "missing_value": self.missing_value,
            "negative": self.negative,
        }


@dataclass(frozen=True)
class ProfileResult:
    """
    Tagged outcome of one pipeline run.

    ``profile`` carries the best values computed so far even when the status
    is a failure. Only results with ``ok`` set may be persisted.
    """

    status: ProfileStatus
    profile: LoadProfile = field(default_factory=LoadProfile)
    reason: str | None = None
    warnings: tuple[str, ...] = ()
    config: ParseConfig | None = None
    headers: Row = ()
    row_stats: RowStats = field(default_factory=RowStats)
    detection: FormatDetection | None = None
    classification: Classification | None = None

    @property
    def ok(self) -> bool:
        return self.status is ProfileStatus.OK

    @property
    def meter_name(self) -> str | None:
        return self.detection.preamble_meter_name if self.detection else None

    @property
    def value_column(self) -> str | None:
        if self.config is None or self.config.value_column_index is None:
            return None
        index = self.config.value_column_index
        return self.headers[index] if index < len(self.headers) else None

    def processing_config(self) -> ProcessingConfig | None:
        """
        Record of the column and unit used, for deterministic reprocessing.
        """
        column = self.value_column
        if self.config is None or column is None:
            return None
        return ProcessingConfig(
            column=column,
            unit=self.config.unit.value,
            voltage_v=self.config.voltage_v,
            power_factor=self.config.power_factor,
        )


# ---------------------------------------------------------------------------
# Configuration assembly
# ---------------------------------------------------------------------------


def merge_overrides(*overrides: ParseConfigOverride | None) -> ParseConfigOverride | None:
    """
    Combine overrides left to right; later non-None fields win.
    """

    merged: dict[str, object] = {}
    for override in overrides:
        if override is None:
            continue
        for item in fields(override):
            value = getattr(override, item.name)
            if value is not None:
                merged[item.name] = value
    return ParseConfigOverride(**merged) if merged else None


def _structural_config(
    detection: FormatDetection,
    settings: PipelineSettings,
    override: ParseConfigOverride | None,
) -> ParseConfig:
    base = ParseConfig(
        delimiters=detection.delimiters,
        quote_char=detection.quote_char,
        start_row=detection.start_row,
        collapse_consecutive=detection.collapse_consecutive,
        voltage_v=settings.default_voltage_v,
        power_factor=settings.default_power_factor,
        detected_format=detection.detected_format,
        date_order=settings.date_order,
    )
    if override is None:
        return base
    structural = ParseConfigOverride(
        delimiters=override.delimiters,
        quote_char=override.quote_char,
        start_row=override.start_row,
        collapse_consecutive=override.collapse_consecutive,
    )
    return base.with_overrides(structural)


def _with_value_column(
    classification: Classification,
    index: int,
    headers: Row,
    sample_rows: Sequence[Row],
) -> tuple[tuple[ColumnAssignment, ...], Unit, bool]:
    """
    Re-point the VALUE role at a caller-chosen column.
    """

    assignments = tuple(
        replace(
            assignment,
            role=ColumnRole.VALUE
            if assignment.index == index
            else (ColumnRole.TEXT if assignment.role is ColumnRole.VALUE else assignment.role),
        )
        for assignment in classification.assignments
    )
    unit, cumulative = guess_unit(headers[index], column_samples(sample_rows, index))
    return assignments, unit, cumulative


def _resolve_config(
    structural: ParseConfig,
    classification: Classification,
    headers: Row,
    sample_rows: Sequence[Row],
    override: ParseConfigOverride | None,
) -> ParseConfig:
    config = replace(
        structural,
        columns=classification.assignments,
        value_column_index=classification.value_column_index,
        unit=classification.unit,
        cumulative=classification.is_cumulative,
    )
    if override is None:
        return config

    chosen = override.value_column_index
    if chosen is not None and 0 <= chosen < len(headers) and chosen != classification.value_column_index:
        assignments, unit, cumulative = _with_value_column(classification, chosen, headers, sample_rows)
        config = replace(config, columns=assignments, cumulative=cumulative, unit=unit)
    elif chosen is not None and not 0 <= chosen < len(headers):
        raise ValueError(f"value_column_index {chosen} is outside the {len(headers)} header columns.")

    return config.with_overrides(override)


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------


def _cell(row: Row, index: int | None) -> str | None:
    if index is None or index >= len(row):
        return None
    return row[index]


def extract_readings(rows: Sequence[Row], config: ParseConfig, stats: RowStats) -> list[tuple[datetime, float]]:
    """
    Pull (timestamp, raw value) pairs out of tokenized data rows.

    Rows lacking a parseable timestamp or number are counted and skipped.
    """

    date_index = config.column_for(ColumnRole.DATETIME, ColumnRole.DATE)
    time_index = config.column_for(ColumnRole.TIME)
    value_index = config.value_column_index

    readings: list[tuple[datetime, float]] = []
    for row in rows:
        stats.total += 1
        instant = parse_datetime(_cell(row, date_index), _cell(row, time_index), config.date_order)
        if instant is None:
            stats.missing_timestamp += 1
            continue
        value = parse_number(_cell(row, value_index))
        if value is None:
            stats.missing_value += 1
            continue
        readings.append((instant, value))
    return readings


def difference_cumulative(readings: Sequence[tuple[datetime, float]]) -> list[tuple[datetime, float]]:
    """
    Turn running-total readings into per-interval consumption.

    The first reading has no predecessor and is dropped. A decrease is taken
    as a meter rollover or reset, so the current reading is the consumption.
    """

    ordered = sorted(readings, key=lambda item: item[0])
    deltas: list[tuple[datetime, float]] = []
    for (_, previous), (instant, current) in zip(ordered, ordered[1:]):
        deltas.append((instant, current - previous if current >= previous else current))
    return deltas


def confirm_cumulative(
    config: ParseConfig,
    readings: Sequence[tuple[datetime, float]],
    headers: Row,
    sample_rows: Sequence[Row],
    explicit_unit: bool = False,
) -> ParseConfig:
    """
    Re-check a sampled running-total guess against every extracted reading.

    The classifier only sees the first rows, so an interval series that opens
    on a ramp looks like a register. When the full series is not
    monotonic the column is read as interval data and, unless the caller fixed
    the unit, the unit is re-voted without the running-total signature.
    """

    ordered = [value for _, value in sorted(readings, key=lambda item: item[0])]
    if is_cumulative_series(ordered):
        return config

    logger.debug("Sampled running-total signature not confirmed by %d readings.", len(ordered))
    unit = config.unit
    index = config.value_column_index
    if not explicit_unit and index is not None and index < len(headers):
        unit, _ = guess_unit(headers[index], column_samples(sample_rows, index), cumulative=False)
    return replace(config, cumulative=False, unit=unit)


def apply_negative_policy(
    readings: Sequence[tuple[datetime, float]],
    policy: NegativePolicy,
    stats: RowStats,
) -> list[tuple[datetime, float]]:
    if policy is NegativePolicy.KEEP:
        return list(readings)
    if policy is NegativePolicy.ABSOLUTE:
        return [(instant, abs(value)) for instant, value in readings]
    kept = [(instant, value) for instant, value in readings if value >= 0]
    stats.negative += len(readings) - len(kept)
    return kept


def to_data_points(readings: Sequence[tuple[datetime, float]], config: ParseConfig) -> list[DataPoint]:
    return [
        DataPoint(
            date=instant.date(),
            time=instant.time(),
            value=normalize(value, config.unit, config.voltage_v, config.power_factor),
        )
        for instant, value in readings
    ]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _detect(lines: Sequence[str], settings: PipelineSettings) -> FormatDetection:
    scan_lines = max(settings.header_scan_lines, 2)
    # One extra line so a preamble on the last scanned line can see its header.
    return detect(lines[: scan_lines + 1], scan_lines)


def detect_format(text: str, *, settings: PipelineSettings | None = None) -> FormatDetection:
    """
    Structural detection only: header row, delimiters and any preamble meter name.
    """

    return _detect(split_lines(text), settings or PipelineSettings())


def _failure(status: ProfileStatus, reason: str, **kwargs) -> ProfileResult:
    logger.warning("Load profile not built: status=%s reason=%s", status.value, reason)
    return ProfileResult(status=status, reason=reason, **kwargs)


def build_load_profile(
    text: str,
    *,
    override: ParseConfigOverride | None = None,
    processing_config: ProcessingConfig | None = None,
    settings: PipelineSettings | None = None,
) -> ProfileResult:
    """
    Build a LoadProfile from raw export text.

    Args:
        text: Full file content.
        override: Caller-supplied settings; wins over everything else.
        processing_config: Column and unit recorded by a previous run. Its
            header name is matched case-insensitively against this file.
        settings: Pipeline tunables; defaults when omitted.

    Returns:
        ProfileResult tagged OK or with the failure that stopped the run.
    """

    settings = settings or PipelineSettings()
    lines = split_lines(text)
    if not lines:
        return _failure(ProfileStatus.EMPTY_PROFILE, "File contains no data.")

    detection = _detect(lines, settings)
    try:
        structural = _structural_config(detection, settings, override)
    except ValueError as exc:
        return _failure(ProfileStatus.INVALID_CONFIG, str(exc), detection=detection)

    if structural.start_row > len(lines):
        return _failure(
            ProfileStatus.EMPTY_PROFILE,
            f"Header row {structural.start_row} is past the end of the file.",
            detection=detection,
            config=structural,
        )

    rows = tokenize_lines(lines[structural.start_row - 1:], structural)
    headers, data_rows = rows[0], rows[1:]

    classification = classify(headers, data_rows, settings.classifier_sample_rows)
    reprocess = processing_config.to_override(headers) if processing_config else None
    if reprocess is not None and reprocess.value_column_index is None:
        logger.warning(
            "Stored value column %r not found in headers; falling back to detection.",
            processing_config.column,
        )
        reprocess = None
    merged = merge_overrides(reprocess, override)

    try:
        config = _resolve_config(structural, classification, headers, data_rows, merged)
    except InvalidUnitError as exc:
        return _failure(
            ProfileStatus.INVALID_UNIT,
            str(exc),
            detection=detection,
            classification=classification,
            headers=headers,
        )
    except ValueError as exc:
        return _failure(
            ProfileStatus.INVALID_CONFIG,
            str(exc),
            detection=detection,
            classification=classification,
            headers=headers,
        )

    context = {
        "config": config,
        "headers": headers,
        "detection": detection,
        "classification": classification,
    }
    if config.value_column_index is None:
        return _failure(ProfileStatus.EMPTY_PROFILE, "No numeric value column was found.", **context)
    if config.column_for(ColumnRole.DATETIME, ColumnRole.DATE) is None:
        return _failure(ProfileStatus.EMPTY_PROFILE, "No date column was found.", **context)

    stats = RowStats()
    readings = extract_readings(data_rows, config, stats)
    if config.cumulative and (merged is None or merged.cumulative is None):
        config = confirm_cumulative(
            config,
            readings,
            headers,
            data_rows[: settings.classifier_sample_rows],
            explicit_unit=merged is not None and merged.unit is not None,
        )
        context["config"] = config
    if config.cumulative:
        readings = difference_cumulative(readings)
    readings = apply_negative_policy(readings, config.negative_policy, stats)
    stats.accepted = len(readings)
    points = to_data_points(readings, config)
    context["row_stats"] = stats

    if not points:
        return _failure(
            ProfileStatus.EMPTY_PROFILE,
            "No row yielded both a timestamp and a numeric value.",
            **context,
        )

    interval = detect_interval(points, settings.interval_sample_size)
    profile = aggregate(points, config.unit.unit_class, interval)
    context["profile"] = profile
    logger.debug(
        "Aggregated %d points interval=%d total_kwh=%.4f peak_kw=%.4f",
        profile.data_points,
        interval,
        profile.total_kwh,
        profile.peak_kw,
    )

    if profile.total_kwh == 0:
        return _failure(ProfileStatus.EMPTY_PROFILE, "Total energy is zero.", **context)
    if profile.data_points < settings.min_data_rows:
        return _failure(
            ProfileStatus.VALIDATION_FAILURE,
            f"Only {profile.data_points} data points; at least {settings.min_data_rows} are required.",
            **context,
        )

    validation = validate_profile(profile)
    if not validation.is_valid:
        return _failure(ProfileStatus.VALIDATION_FAILURE, validation.reason or "Validation failed.", **context)

    return ProfileResult(status=ProfileStatus.OK, warnings=validation.warnings, **context)


def preview(
    text: str,
    *,
    override: ParseConfigOverride | None = None,
    max_rows: int = DEFAULT_PREVIEW_ROWS,
    settings: PipelineSettings | None = None,
) -> ParsedPreview:
    """
    Headers and the first ``max_rows`` data rows as the pipeline would see them.
    """

    settings = settings or PipelineSettings()
    lines = split_lines(text)
    detection = _detect(lines, settings)
    if not lines:
        return ParsedPreview(headers=(), rows=(), detection=detection, total_rows=0)

    config = _structural_config(detection, settings, override)
    body = lines[config.start_row - 1:]
    if not body:
        return ParsedPreview(headers=(), rows=(), detection=detection, total_rows=0)

    rows = tokenize_lines(body[: max_rows + 1], config)
    return ParsedPreview(
        headers=rows[0],
        rows=tuple(rows[1:]),
        detection=detection,
        total_rows=len(body) - 1,
    )

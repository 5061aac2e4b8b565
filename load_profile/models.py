"""
load_profile/models.py

Typed records shared by every stage of the load-profile pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date, time
from enum import Enum
from typing import Any, Sequence

from load_profile.constants import (
    DEFAULT_DELIMITER,
    DEFAULT_POWER_FACTOR,
    DEFAULT_QUOTE_CHAR,
    DEFAULT_VOLTAGE_V,
    HOURS_PER_DAY,
)
from load_profile.units import Unit

Row = tuple[str, ...]


class ColumnRole(str, Enum):
    """
    Semantic role of one column in a meter export.
    """

    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    VALUE = "value"
    TEXT = "text"

    @property
    def carries_date(self) -> bool:
        return self in (ColumnRole.DATE, ColumnRole.DATETIME)


class DetectedFormat(str, Enum):
    VENDOR_PREAMBLE = "vendor-preamble"
    GENERIC = "generic"


class DateOrder(str, Enum):
    """
    Field order hint for ambiguous numeric dates such as ``03/04/2024``.
    """

    YMD = "YMD"
    DMY = "DMY"
    MDY = "MDY"


class NegativePolicy(str, Enum):
    """
    Treatment of negative readings (export channels, meter resets).
    """

    FILTER = "filter"
    ABSOLUTE = "absolute"
    KEEP = "keep"


@dataclass(frozen=True)
class DelimiterSet:
    """
    Enabled field separators.

    An empty set falls back to comma when resolved to characters.
    """

    tab: bool = False
    semicolon: bool = False
    comma: bool = False
    space: bool = False
    custom: str | None = None

    @property
    def chars(self) -> frozenset[str]:
        enabled: set[str] = set()
        if self.tab:
            enabled.add("\t")
        if self.semicolon:
            enabled.add(";")
        if self.comma:
            enabled.add(",")
        if self.space:
            enabled.add(" ")
        if self.custom:
            enabled.add(self.custom[0])
        return frozenset(enabled or {DEFAULT_DELIMITER})

    @classmethod
    def from_chars(cls, chars: Sequence[str] | frozenset[str] | set[str]) -> "DelimiterSet":
        flags: dict[str, Any] = {}
        custom: str | None = None
        for char in chars:
            if char == "\t":
                flags["tab"] = True
            elif char == ";":
                flags["semicolon"] = True
            elif char == ",":
                flags["comma"] = True
            elif char == " ":
                flags["space"] = True
            elif char:
                custom = char[0]
        return cls(custom=custom, **flags)


@dataclass(frozen=True)
class ColumnAssignment:
    """
    Role assigned to one column.
    """

    index: int
    header: str
    role: ColumnRole


@dataclass(frozen=True)
class ParseConfig:
    """
    Complete, immutable parse configuration for one file.
    """

    delimiters: DelimiterSet = field(default_factory=lambda: DelimiterSet(comma=True))
    quote_char: str | None = DEFAULT_QUOTE_CHAR
    start_row: int = 1
    collapse_consecutive: bool = False
    columns: tuple[ColumnAssignment, ...] = ()
    value_column_index: int | None = None
    unit: Unit = Unit.KWH
    voltage_v: float = DEFAULT_VOLTAGE_V
    power_factor: float = DEFAULT_POWER_FACTOR
    detected_format: DetectedFormat = DetectedFormat.GENERIC
    date_order: DateOrder = DateOrder.DMY
    cumulative: bool = False
    negative_policy: NegativePolicy = NegativePolicy.FILTER

    def __post_init__(self) -> None:
        if self.start_row < 1:
            raise ValueError(f"start_row is 1-based, got {self.start_row}.")
        if not (0.0 < self.power_factor <= 1.0):
            raise ValueError(f"power_factor must be in (0, 1], got {self.power_factor}.")
        if self.voltage_v <= 0:
            raise ValueError(f"voltage_v must be positive, got {self.voltage_v}.")

    def column_for(self, *roles: ColumnRole) -> int | None:
        """
        Index of the first column holding any of *roles*.
        """

        for assignment in self.columns:
            if assignment.role in roles:
                return assignment.index
        return None

    def with_overrides(self, override: "ParseConfigOverride | None") -> "ParseConfig":
        if override is None:
            return self
        changes = {
            item.name: getattr(override, item.name)
            for item in fields(override)
            if getattr(override, item.name) is not None
        }
        if "unit" in changes:
            changes["unit"] = Unit.parse(changes["unit"])
        if changes.get("quote_char") == "":
            changes["quote_char"] = None
        return replace(self, **changes)


@dataclass(frozen=True)
class ParseConfigOverride:
    """
    Caller-supplied settings that take precedence over auto-detection.

    ``None`` means "keep what detection found". An empty ``quote_char``
    disables quoting.
    """

    delimiters: DelimiterSet | None = None
    quote_char: str | None = None
    start_row: int | None = None
    collapse_consecutive: bool | None = None
    columns: tuple[ColumnAssignment, ...] | None = None
    value_column_index: int | None = None
    unit: Unit | str | None = None
    voltage_v: float | None = None
    power_factor: float | None = None
    detected_format: DetectedFormat | None = None
    date_order: DateOrder | None = None
    cumulative: bool | None = None
    negative_policy: NegativePolicy | None = None


@dataclass(frozen=True)
class ProcessingConfig:
    """
    Persisted reprocessing record: which column and unit a prior run used.
    """

    column: str
    unit: str
    voltage_v: float = DEFAULT_VOLTAGE_V
    power_factor: float = DEFAULT_POWER_FACTOR

    def to_override(self, headers: Sequence[str]) -> ParseConfigOverride:
        """
        Build an override, resolving the stored header name case-insensitively.
        """

        wanted = self.column.strip().lower()
        index = next(
            (i for i, header in enumerate(headers) if header.strip().lower() == wanted),
            None,
        )
        return ParseConfigOverride(
            value_column_index=index,
            unit=self.unit,
            voltage_v=self.voltage_v,
            power_factor=self.power_factor,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "column": self.column,
            "unit": self.unit,
            "voltageV": self.voltage_v,
            "powerFactor": self.power_factor,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ProcessingConfig":
        return cls(
            column=str(payload["column"]),
            unit=str(payload["unit"]),
            voltage_v=float(payload.get("voltageV") or DEFAULT_VOLTAGE_V),
            power_factor=float(payload.get("powerFactor") or DEFAULT_POWER_FACTOR),
        )


@dataclass(frozen=True)
class DataPoint:
    """
    One valid reading after unit normalization.
    """

    date: date
    time: time
    value: float


def _zero_profile() -> tuple[float, ...]:
    return (0.0,) * HOURS_PER_DAY


@dataclass(frozen=True)
class LoadProfile:
    """
    Normalized weekday/weekend shape plus summary statistics.
    """

    weekday_profile: tuple[float, ...] = field(default_factory=_zero_profile)
    weekend_profile: tuple[float, ...] = field(default_factory=_zero_profile)
    weekday_days: int = 0
    weekend_days: int = 0
    peak_kw: float = 0.0
    avg_kw: float = 0.0
    total_kwh: float = 0.0
    load_factor: float = 0.0
    data_points: int = 0
    date_range_start: date | None = None
    date_range_end: date | None = None
    detected_interval_minutes: int = 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekday_profile": list(self.weekday_profile),
            "weekend_profile": list(self.weekend_profile),
            "weekday_days": self.weekday_days,
            "weekend_days": self.weekend_days,
            "peak_kw": self.peak_kw,
            "avg_kw": self.avg_kw,
            "total_kwh": self.total_kwh,
            "load_factor": self.load_factor,
            "data_points": self.data_points,
            "date_range_start": self.date_range_start.isoformat() if self.date_range_start else None,
            "date_range_end": self.date_range_end.isoformat() if self.date_range_end else None,
            "detected_interval_minutes": self.detected_interval_minutes,
        }


@dataclass(frozen=True)
class FormatDetection:
    """
    Structural facts recovered from the first lines of a file.
    """

    start_row: int = 1
    delimiters: DelimiterSet = field(default_factory=lambda: DelimiterSet(comma=True))
    quote_char: str | None = DEFAULT_QUOTE_CHAR
    collapse_consecutive: bool = False
    detected_format: DetectedFormat = DetectedFormat.GENERIC
    preamble_meter_name: str | None = None
    preamble_date_range: tuple[str, str] | None = None


@dataclass(frozen=True)
class ParsedPreview:
    """
    Headers and a truncated row sample for display.
    """

    headers: Row
    rows: tuple[Row, ...]
    detection: FormatDetection
    total_rows: int

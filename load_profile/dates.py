"""
load_profile/dates.py

Lenient date and time-of-day parsing for meter exports.

Parsers return ``None`` on anything they cannot read; a bad cell skips its
row and never aborts a file.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from load_profile.models import DateOrder

MONTHS: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?")
_NUMERIC_DATE_RE = re.compile(r"^(\d{1,4})[-/. ](\d{1,2})[-/. ](\d{1,4})(?:[T\s]+(.*))?$")
_MONTH_NAME_DATE_RE = re.compile(r"^(\d{1,2})[-/. ]([A-Za-z]{3,9})[-/. ](\d{2,4})(?:[T\s]+(.*))?$")
_DATETIME_HINT_RE = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}[T\s]+\d{1,2}:\d{2}")
_DATE_HINT_RE = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}")


def _clean(value: str | None) -> str:
    if value is None:
        return ""
    return value.strip().strip("\"'").strip()


def _expand_year(year: int) -> int:
    if year < 100:
        return year + (1900 if year > 50 else 2000)
    return year


def _order_parts(p1: int, p2: int, p3: int, order: DateOrder) -> tuple[int, int, int]:
    """
    Resolve (year, month, day) from three numeric parts.

    A part greater than 31 can only be the year, which settles the layout
    regardless of the hint.
    """

    if p1 > 31:
        return p1, p2, p3
    if order is DateOrder.YMD and p3 <= 31:
        return _expand_year(p1), p2, p3
    year = _expand_year(p3)
    if order is DateOrder.MDY:
        return (year, p2, p1) if p1 > 12 else (year, p1, p2)
    return (year, p1, p2) if p2 > 12 else (year, p2, p1)


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_time(value: str | None) -> tuple[time, int] | None:
    """
    Parse ``HH:MM[:SS]`` into a time-of-day and a day offset.

    ``24:00`` is read as midnight of the following day (offset 1).
    """

    raw = _clean(value)
    if not raw:
        return None
    match = _TIME_RE.search(raw)
    if match is None:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3) or 0)
    if minute > 59 or second > 59:
        return None
    if hour == 24 and minute == 0 and second == 0:
        return time(0, 0), 1
    if hour > 23:
        return None
    lowered = raw.lower()
    if lowered.endswith("pm") and hour < 12:
        hour += 12
    elif lowered.endswith("am") and hour == 12:
        hour = 0
    return time(hour, minute, second), 0


def parse_date(value: str | None, order: DateOrder = DateOrder.DMY) -> date | None:
    """
    Parse the date portion of *value*, ignoring any trailing time.
    """

    parsed = _split_date_and_rest(value, order)
    return parsed[0] if parsed else None


def _split_date_and_rest(value: str | None, order: DateOrder) -> tuple[date, str] | None:
    raw = _clean(value)
    if not raw:
        return None

    numeric = _NUMERIC_DATE_RE.match(raw)
    if numeric:
        year, month, day = _order_parts(
            int(numeric.group(1)),
            int(numeric.group(2)),
            int(numeric.group(3)),
            order,
        )
        parsed = _safe_date(year, month, day)
        if parsed is None:
            return None
        return parsed, numeric.group(4) or ""

    named = _MONTH_NAME_DATE_RE.match(raw)
    if named:
        month = MONTHS.get(named.group(2)[:3].lower())
        if month is None:
            return None
        parsed = _safe_date(_expand_year(int(named.group(3))), month, int(named.group(1)))
        if parsed is None:
            return None
        return parsed, named.group(4) or ""

    return None


def parse_datetime(
    date_value: str | None,
    time_value: str | None = None,
    order: DateOrder = DateOrder.DMY,
) -> datetime | None:
    """
    Combine a date cell and an optional time cell into one instant.

    When *time_value* is empty the time is taken from the date cell itself
    (combined ``date time`` exports) and defaults to midnight.
    """

    split = _split_date_and_rest(date_value, order)
    if split is None:
        return None
    day, rest = split

    time_source = time_value if _clean(time_value) else rest
    parsed_time = parse_time(time_source) if _clean(time_source) else (time(0, 0), 0)
    if parsed_time is None:
        return None
    clock, offset = parsed_time
    return datetime.combine(day, clock) + timedelta(days=offset)


def looks_like_datetime(value: str | None) -> bool:
    """
    True when *value* holds both a date and a clock time.
    """

    return bool(_DATETIME_HINT_RE.search(_clean(value)))


def looks_like_date(value: str | None) -> bool:
    return bool(_DATE_HINT_RE.search(_clean(value)))

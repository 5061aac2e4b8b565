"""
load_profile/constants.py

Detection heuristics expressed as named tables.

Every keyword list, scoring weight, and threshold used by the format
detector and the column classifier lives here so that each can be
exercised on its own in tests.
"""

from __future__ import annotations

from typing import Final

# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

HEADER_SCAN_LINES: Final[int] = 10
"""Number of non-blank lines scanned when looking for the header row."""

HEADER_KEYWORDS: Final[tuple[str, ...]] = (
    "date",
    "time",
    "timestamp",
    "datum",
    "zeit",
    "tyd",
    "kwh",
    "kw",
    "kva",
    "energy",
    "power",
    "value",
    "reading",
    "consumption",
    "demand",
    "active",
)
"""Case-insensitive substrings that mark a line as the header row."""

VENDOR_HEADER_TOKENS: Final[tuple[str, ...]] = ("rdate", "rtime", "kwh")
"""All of these must appear in the line following a vendor preamble."""

VENDOR_MARKERS: Final[tuple[str, ...]] = ("pnpscada", "scada.com")
"""Substrings of a vendor banner line that carries only a meter identifier."""

PREAMBLE_PATTERN: Final[str] = (
    r'^,?"?([^",]+)"?,(\d{4}-\d{2}-\d{2}),(\d{4}-\d{2}-\d{2})'
)
"""Vendor preamble: optional leading comma, quoted meter name, two ISO dates."""

SEP_DIRECTIVE_PATTERN: Final[str] = r"^sep=(.)"
"""Excel delimiter directive placed on the first line of some exports."""

CANDIDATE_DELIMITERS: Final[tuple[str, ...]] = ("\t", ";", ",", "|")
"""Delimiters counted on the header row, in tie-break priority order."""

LENIENT_DELIMITER_MIN_COUNT: Final[int] = 1
STRICT_DELIMITER_MIN_COUNT: Final[int] = 2

FIXED_WIDTH_GAP_PATTERN: Final[str] = r"\S {2,}\S"
"""Two or more spaces between tokens signal a space-padded export."""

DEFAULT_DELIMITER: Final[str] = ","
DEFAULT_QUOTE_CHAR: Final[str] = '"'

# ---------------------------------------------------------------------------
# Column classification
# ---------------------------------------------------------------------------

CLASSIFIER_SAMPLE_ROWS: Final[int] = 10

DATE_HEADER_TOKENS: Final[tuple[str, ...]] = ("date", "datum", "timestamp", "datetime")
TIME_HEADER_TOKENS: Final[tuple[str, ...]] = ("time", "tyd", "hour", "zeit")

EXACT_HEADER_WEIGHTS: Final[dict[str, tuple[int, str]]] = {
    "kwh": (100, "energy"),
    "kwh_del": (100, "energy"),
    "p1 (kwh)": (95, "energy"),
    "p1(kwh)": (95, "energy"),
    "kw": (80, "power"),
    "power": (80, "power"),
}
"""Whole-header matches: weight and the unit class the header implies."""

PARTIAL_HEADER_WEIGHTS: Final[tuple[tuple[tuple[str, ...], int, str], ...]] = (
    (("kwh", "energy", "consumption"), 70, "energy"),
    (("kw", "demand"), 60, "power"),
    (("value", "reading"), 40, "energy"),
)
"""Substring matches, checked in order; the first matching group wins."""

NUMERIC_RATIO_THRESHOLD: Final[float] = 0.8
NUMERIC_BOOST: Final[int] = 20

CUMULATIVE_PAIR_RATIO: Final[float] = 0.9
"""Share of increasing consecutive pairs that marks a running-total column."""

MIN_CUMULATIVE_SAMPLES: Final[int] = 3
"""Fewer numeric samples than this never count as a running total."""

ENERGY_MAGNITUDE_THRESHOLD: Final[float] = 1000.0

EXPLICIT_UNIT_VOTE: Final[float] = 2.0
KEYWORD_UNIT_VOTE: Final[float] = 1.0
MAGNITUDE_UNIT_VOTE: Final[float] = 0.5

DATETIME_SAMPLE_RATIO: Final[float] = 0.5
"""Share of samples that must hold a combined date and time for promotion."""

# ---------------------------------------------------------------------------
# Interval detection
# ---------------------------------------------------------------------------

STANDARD_INTERVALS_MINUTES: Final[tuple[int, ...]] = (1, 5, 10, 15, 30, 60, 120, 180, 240)
DEFAULT_INTERVAL_MINUTES: Final[int] = 60
INTERVAL_SAMPLE_SIZE: Final[int] = 200
MAX_INTERVAL_GAP_MINUTES: Final[float] = 240.0

# ---------------------------------------------------------------------------
# Aggregation and validation
# ---------------------------------------------------------------------------

HOURS_PER_DAY: Final[int] = 24
PROFILE_TOTAL: Final[float] = 100.0
PROFILE_DECIMALS: Final[int] = 2

MIN_REPRESENTATIVE_POINTS: Final[int] = 48
IMPLAUSIBLE_DEMAND_KW: Final[float] = 1_000_000.0
FLAT_LINE_TOLERANCE: Final[float] = 0.15
"""Spread, in percentage points, under which a profile counts as flat.

Wide enough to absorb the rounding residual placed on one bucket."""

DEFAULT_VOLTAGE_V: Final[float] = 400.0
DEFAULT_POWER_FACTOR: Final[float] = 0.9

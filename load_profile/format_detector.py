"""
load_profile/format_detector.py

Structure detection for meter exports.

Finds the header row, recognizes vendor preambles that carry a meter name
and date range, and infers the delimiter set. Detection never raises: with
no usable signal the result is comma-delimited, double-quoted, header on
line 1.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from load_profile.constants import (
    CANDIDATE_DELIMITERS,
    DEFAULT_QUOTE_CHAR,
    FIXED_WIDTH_GAP_PATTERN,
    HEADER_KEYWORDS,
    HEADER_SCAN_LINES,
    LENIENT_DELIMITER_MIN_COUNT,
    PREAMBLE_PATTERN,
    SEP_DIRECTIVE_PATTERN,
    STRICT_DELIMITER_MIN_COUNT,
    VENDOR_HEADER_TOKENS,
    VENDOR_MARKERS,
)
from load_profile.models import DelimiterSet, DetectedFormat, FormatDetection
from load_profile.tokenizer import tokenize

logger = logging.getLogger(__name__)

_PREAMBLE_RE = re.compile(PREAMBLE_PATTERN)
_SEP_RE = re.compile(SEP_DIRECTIVE_PATTERN, re.IGNORECASE)
_FIXED_WIDTH_RE = re.compile(FIXED_WIDTH_GAP_PATTERN)

_BOM = "\ufeff"


def split_lines(text: str) -> list[str]:
    """
    Split raw file text into non-blank lines.

    Strips a UTF-8 byte-order mark and carriage returns. Line numbers used by
    the rest of the pipeline count only the lines returned here.
    """

    if text.startswith(_BOM):
        text = text[len(_BOM):]
    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


def _has_header_keyword(line: str) -> bool:
    lowered = line.lower()
    return any(keyword in lowered for keyword in HEADER_KEYWORDS)


def _is_vendor_header(line: str) -> bool:
    lowered = line.lower()
    return all(token in lowered for token in VENDOR_HEADER_TOKENS)


def _is_vendor_marker(line: str) -> bool:
    lowered = line.lower()
    return any(marker in lowered for marker in VENDOR_MARKERS)


def _find_header_index(lines: Sequence[str], first: int, skip: set[int], scan_lines: int) -> int | None:
    for index in range(first, min(len(lines), scan_lines)):
        if index in skip:
            continue
        if _has_header_keyword(lines[index]):
            return index
    return None


def infer_delimiters(line: str) -> tuple[DelimiterSet, bool]:
    """
    Infer separators from one sample line.

    Returns:
        ``(delimiters, collapse_consecutive)``.
    """

    counts = {char: line.count(char) for char in CANDIDATE_DELIMITERS}

    lenient = [c for c in CANDIDATE_DELIMITERS if counts[c] >= LENIENT_DELIMITER_MIN_COUNT]
    if not lenient:
        if _FIXED_WIDTH_RE.search(line.strip()):
            return DelimiterSet(space=True), True
        return DelimiterSet(comma=True), False
    if len(lenient) == 1:
        return DelimiterSet.from_chars(lenient), False

    strict = [c for c in lenient if counts[c] >= STRICT_DELIMITER_MIN_COUNT]
    if not strict:
        # max() keeps the first of equal counts, so tie order follows the table.
        strict = [max(lenient, key=lambda c: counts[c])]
    return DelimiterSet.from_chars(strict), False


def detect(lines: Sequence[str], scan_lines: int = HEADER_SCAN_LINES) -> FormatDetection:
    """
    Detect the structure of a file from its leading non-blank lines.

    Args:
        lines: Non-blank lines as returned by :func:`split_lines`.
        scan_lines: How many leading lines may hold the preamble and header.

    Returns:
        FormatDetection with a 1-based ``start_row`` naming the header line.
    """

    if not lines:
        return FormatDetection()

    skip: set[int] = set()
    forced_delimiters: DelimiterSet | None = None

    sep_match = _SEP_RE.match(lines[0].strip())
    if sep_match:
        forced_delimiters = DelimiterSet.from_chars([sep_match.group(1)])
        skip.add(0)

    meter_name: str | None = None
    date_range: tuple[str, str] | None = None
    detected_format = DetectedFormat.GENERIC
    header_index: int | None = None

    scan_limit = min(len(lines), scan_lines)
    for index in range(scan_limit):
        if index in skip:
            continue
        match = _PREAMBLE_RE.match(lines[index].strip())
        if match and index + 1 < len(lines) and _is_vendor_header(lines[index + 1]):
            meter_name = match.group(1).strip()
            date_range = (match.group(2), match.group(3))
            detected_format = DetectedFormat.VENDOR_PREAMBLE
            header_index = index + 1
            break
        if _is_vendor_marker(lines[index]):
            marker_fields = tokenize(lines[index], forced_delimiters or DelimiterSet(comma=True))
            if len(marker_fields) > 1 and marker_fields[1]:
                meter_name = marker_fields[1]
            detected_format = DetectedFormat.VENDOR_PREAMBLE
            skip.add(index)
            break

    if header_index is None:
        header_index = _find_header_index(lines, 0, skip, scan_lines)
    if header_index is None:
        header_index = next((i for i in range(len(lines)) if i not in skip), 0)

    if forced_delimiters is not None:
        delimiters, collapse = forced_delimiters, False
    else:
        delimiters, collapse = infer_delimiters(lines[header_index])

    detection = FormatDetection(
        start_row=header_index + 1,
        delimiters=delimiters,
        quote_char=DEFAULT_QUOTE_CHAR,
        collapse_consecutive=collapse,
        detected_format=detected_format,
        preamble_meter_name=meter_name,
        preamble_date_range=date_range,
    )
    logger.debug(
        "Format detected: start_row=%s delimiters=%s collapse=%s format=%s",
        detection.start_row,
        sorted(delimiters.chars),
        collapse,
        detected_format.value,
    )
    return detection

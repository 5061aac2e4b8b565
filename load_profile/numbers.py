"""
load_profile/numbers.py

Numeric cell parsing tolerant of export quirks.
"""

from __future__ import annotations

import math
import re

_STRIP_RE = re.compile(r"[\s\"']")


def parse_number(value: str | None) -> float | None:
    """
    Parse a numeric cell, returning ``None`` for anything non-finite.

    Accepts a decimal comma (``1,5``) and thousands separators
    (``1,234.5`` or ``1.234,5``).
    """

    if value is None:
        return None
    text = _STRIP_RE.sub("", value)
    if not text:
        return None

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") == 1:
        text = text.replace(",", ".")
    elif "," in text:
        text = text.replace(",", "")

    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def numeric_ratio(values: list[str | None]) -> float:
    if not values:
        return 0.0
    parsed = sum(1 for value in values if parse_number(value) is not None)
    return parsed / len(values)

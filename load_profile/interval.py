"""
load_profile/interval.py

Sampling-interval estimation.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable, Sequence

from load_profile.constants import (
    DEFAULT_INTERVAL_MINUTES,
    INTERVAL_SAMPLE_SIZE,
    MAX_INTERVAL_GAP_MINUTES,
    STANDARD_INTERVALS_MINUTES,
)
from load_profile.models import DataPoint


def round_to_standard_interval(minutes: float) -> int:
    """
    Snap a delta to the nearest standard interval; ties go to the smaller.
    """

    return min(STANDARD_INTERVALS_MINUTES, key=lambda standard: (abs(standard - minutes), standard))


def _instants(points: Iterable[DataPoint | datetime]) -> list[datetime]:
    instants: list[datetime] = []
    for point in points:
        if isinstance(point, datetime):
            instants.append(point)
        else:
            instants.append(datetime.combine(point.date, point.time))
    return instants


def detect_interval(
    points: Sequence[DataPoint | datetime],
    sample_size: int = INTERVAL_SAMPLE_SIZE,
) -> int:
    """
    Estimate the nominal sampling interval in minutes.

    Takes the first ``sample_size`` points, sorts them, drops deltas outside
    ``(0, MAX_INTERVAL_GAP_MINUTES]`` and returns the mode of the deltas
    snapped to the standard set. Fewer than two usable timestamps give the
    hourly default.
    """

    instants = sorted(_instants(points[:sample_size]))
    if len(instants) < 2:
        return DEFAULT_INTERVAL_MINUTES

    snapped: Counter[int] = Counter()
    for earlier, later in zip(instants, instants[1:]):
        delta = (later - earlier).total_seconds() / 60.0
        if 0 < delta <= MAX_INTERVAL_GAP_MINUTES:
            snapped[round_to_standard_interval(delta)] += 1

    if not snapped:
        return DEFAULT_INTERVAL_MINUTES
    top = max(snapped.values())
    return min(minutes for minutes, count in snapped.items() if count == top)

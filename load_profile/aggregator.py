"""
load_profile/aggregator.py

Weekday/weekend hourly aggregation and summary statistics.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from load_profile.constants import HOURS_PER_DAY, PROFILE_DECIMALS, PROFILE_TOTAL
from load_profile.interval import detect_interval
from load_profile.models import DataPoint, LoadProfile
from load_profile.units import UnitClass

_WEEKEND_START = 5  # date.weekday(): Saturday


class ProfileAggregator:
    """
    Builds a LoadProfile from canonical data points.

    Responsibilities:
        - Bucket values by (weekday|weekend, hour of day) and average them.
        - Normalize each 24-hour vector to sum to 100.
        - Derive demand (kW) and energy (kWh) statistics from the stream.

    Not responsible for:
        - Parsing or unit conversion (points arrive canonical).
        - Deciding whether the result is usable (see validation).
    """

    def __init__(self, unit_class: UnitClass, interval_minutes: int) -> None:
        self.unit_class = unit_class
        self.interval_minutes = interval_minutes

    @property
    def interval_hours(self) -> float:
        return self.interval_minutes / 60.0

    def aggregate(self, points: Sequence[DataPoint]) -> LoadProfile:
        if not points:
            return LoadProfile(detected_interval_minutes=self.interval_minutes)

        values = np.array([point.value for point in points], dtype=float)
        hours = np.array([point.time.hour for point in points], dtype=int)
        weekend = np.array([point.date.weekday() >= _WEEKEND_START for point in points])

        weekday_dates = {point.date for point in points if point.date.weekday() < _WEEKEND_START}
        weekend_dates = {point.date for point in points if point.date.weekday() >= _WEEKEND_START}

        weekday_profile = self._normalized(self._bucket_means(hours[~weekend], values[~weekend]))
        weekend_profile = self._normalized(self._bucket_means(hours[weekend], values[weekend]))

        demand_kw = self._demand(values)
        peak_kw = max(float(demand_kw.max()), 0.0)
        avg_kw = max(float(demand_kw.mean()), 0.0)
        if self.unit_class is UnitClass.ENERGY:
            total_kwh = float(values.sum())
        else:
            total_kwh = float(values.sum() * self.interval_hours)
        load_factor = (avg_kw / peak_kw * 100.0) if peak_kw > 0 else 0.0

        all_dates = weekday_dates | weekend_dates
        return LoadProfile(
            weekday_profile=weekday_profile,
            weekend_profile=weekend_profile,
            weekday_days=len(weekday_dates),
            weekend_days=len(weekend_dates),
            peak_kw=peak_kw,
            avg_kw=avg_kw,
            total_kwh=max(total_kwh, 0.0),
            load_factor=load_factor,
            data_points=len(points),
            date_range_start=min(all_dates),
            date_range_end=max(all_dates),
            detected_interval_minutes=self.interval_minutes,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _demand(self, values: np.ndarray) -> np.ndarray:
        """
        Per-reading demand in kW. Energy readings cover one interval each.
        """
        if self.unit_class is UnitClass.ENERGY:
            return values / self.interval_hours
        return values

    @staticmethod
    def _bucket_means(hours: np.ndarray, values: np.ndarray) -> np.ndarray:
        if values.size == 0:
            return np.zeros(HOURS_PER_DAY)
        sums = np.bincount(hours, weights=values, minlength=HOURS_PER_DAY)
        counts = np.bincount(hours, minlength=HOURS_PER_DAY)
        means = np.zeros(HOURS_PER_DAY)
        np.divide(sums, counts, out=means, where=counts > 0)
        return means

    @staticmethod
    def _normalized(means: np.ndarray) -> tuple[float, ...]:
        """
        Scale to PROFILE_TOTAL at PROFILE_DECIMALS places.

        The rounding residual lands on the largest bucket so the vector sums
        to the total exactly. A zero or negative sum leaves all zeros.
        """
        total = float(means.sum())
        if total <= 0:
            return (0.0,) * HOURS_PER_DAY
        scaled = np.round(means / total * PROFILE_TOTAL, PROFILE_DECIMALS)
        residual = round(PROFILE_TOTAL - float(scaled.sum()), PROFILE_DECIMALS)
        if residual:
            largest = int(np.argmax(scaled))
            scaled[largest] = round(float(scaled[largest]) + residual, PROFILE_DECIMALS)
        return tuple(float(value) for value in scaled)


def aggregate(
    points: Sequence[DataPoint],
    unit_class: UnitClass = UnitClass.ENERGY,
    interval_minutes: int | None = None,
) -> LoadProfile:
    """
    Aggregate canonical points into a LoadProfile.

    Args:
        points: Canonical readings, kWh for energy streams or kW for power.
        unit_class: Which of the two the values are.
        interval_minutes: Sampling interval; detected from the points when
            omitted.

    Returns:
        LoadProfile. An empty input yields the all-zero profile.
    """

    if interval_minutes is None:
        interval_minutes = detect_interval(points)
    return ProfileAggregator(unit_class, interval_minutes).aggregate(points)

"""
tests/test_interval.py

Pytest unit tests for sampling-interval detection.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from load_profile.constants import STANDARD_INTERVALS_MINUTES
from load_profile.interval import detect_interval, round_to_standard_interval
from load_profile.models import DataPoint


def _series(start: datetime, step_minutes: float, count: int) -> list[datetime]:
    return [start + timedelta(minutes=step_minutes * i) for i in range(count)]


class TestRoundToStandard:
    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [(1.0, 1), (14.0, 15), (29.5, 30), (44.0, 30), (61.0, 60), (200.0, 180), (240.0, 240)],
    )
    def test_nearest_standard_value(self, minutes: float, expected: int) -> None:
        assert round_to_standard_interval(minutes) == expected

    def test_midpoint_resolves_to_smaller(self) -> None:
        assert round_to_standard_interval(45.0) == 30

    def test_result_always_in_standard_set(self) -> None:
        for minutes in (0.3, 3.0, 7.5, 12.5, 90.0, 150.0, 210.0, 239.0):
            assert round_to_standard_interval(minutes) in STANDARD_INTERVALS_MINUTES


class TestDetectInterval:
    def test_thirty_minute_series(self) -> None:
        instants = _series(datetime(2024, 1, 1), 30, 120)

        assert detect_interval(instants) == 30

    def test_thirty_minute_series_with_day_boundary_gap(self) -> None:
        first_day = _series(datetime(2024, 1, 1, 8), 30, 20)
        second_day = _series(datetime(2024, 1, 2, 8), 30, 20)

        assert detect_interval(first_day + second_day) == 30

    def test_unsorted_data_points(self) -> None:
        points = [
            DataPoint(date=date(2024, 1, 1), time=time(hour, minute), value=1.0)
            for hour in range(6)
            for minute in (45, 30, 15, 0)
        ]

        assert detect_interval(points) == 15

    def test_duplicates_and_jitter_are_tolerated(self) -> None:
        instants = _series(datetime(2024, 1, 1), 15, 50)
        instants += instants[:5]
        instants.append(datetime(2024, 1, 1, 0, 16))

        assert detect_interval(instants) == 15

    def test_only_samples_the_leading_points(self) -> None:
        instants = _series(datetime(2024, 1, 1), 5, 10) + _series(datetime(2024, 2, 1), 60, 300)

        assert detect_interval(instants, sample_size=10) == 5

    @pytest.mark.parametrize(
        "instants",
        [[], [datetime(2024, 1, 1)], [datetime(2024, 1, 1), datetime(2024, 1, 3)]],
    )
    def test_defaults_to_hourly_without_usable_deltas(self, instants: list[datetime]) -> None:
        assert detect_interval(instants) == 60

    def test_mode_ties_resolve_to_smaller_interval(self) -> None:
        instants = [
            datetime(2024, 1, 1, 0, 0),
            datetime(2024, 1, 1, 0, 15),
            datetime(2024, 1, 1, 0, 45),
        ]

        assert detect_interval(instants) == 15

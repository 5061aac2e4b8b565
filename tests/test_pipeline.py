"""
tests/test_pipeline.py

Pytest tests for the end-to-end load-profile pipeline.

Coverage
--------
- Two-week hourly export (day counts, peak hour, statistics)
- Vendor preamble exports
- Explicit value column and stored processing config (determinism)
- Cumulative registers, rollover and negative readings
- Power, decimal-comma and space-padded exports
- Tagged failures: empty profile, invalid unit, invalid config, validation
- Preview
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timedelta

import pytest

from load_profile.models import (
    DelimiterSet,
    NegativePolicy,
    ParseConfigOverride,
    ProcessingConfig,
)
from load_profile.pipeline import (
    PipelineSettings,
    ProfileStatus,
    build_load_profile,
    difference_cumulative,
    merge_overrides,
    preview,
)
from load_profile.units import Unit


def _two_column_export(days: int = 3) -> str:
    lines = ["Date,Time,kWh A,kWh B"]
    start = date(2024, 1, 1)
    for offset in range(days):
        day = start + timedelta(days=offset)
        for hour in range(24):
            a = 1.0 + (hour % 3)
            b = 5.0 if hour == 7 else 0.5
            lines.append(f"{day.isoformat()},{hour:02d}:00,{a},{b}")
    return "\n".join(lines)


def _register_export(readings: list[float]) -> str:
    start = datetime(2024, 1, 1)
    lines = ["Date,Time,Register"]
    for i, reading in enumerate(readings):
        instant = start + timedelta(hours=i)
        lines.append(f"{instant:%Y-%m-%d},{instant:%H:%M},{reading}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestTwoWeekExport:
    def test_builds_profile(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export())

        assert result.status is ProfileStatus.OK
        assert result.ok
        profile = result.profile
        assert profile.weekday_days == 10
        assert profile.weekend_days == 4
        assert profile.peak_kw == pytest.approx(3.0)
        assert profile.total_kwh == pytest.approx(364.0)
        assert profile.detected_interval_minutes == 60
        assert max(range(24), key=lambda h: profile.weekday_profile[h]) == 18
        assert profile.date_range_start == date(2024, 1, 1)
        assert profile.date_range_end == date(2024, 1, 14)

    def test_records_choices(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export())

        assert result.value_column == "kWh"
        assert result.config is not None
        assert result.config.unit is Unit.KWH
        assert result.row_stats.total == 14 * 24
        assert result.row_stats.skipped == 0
        assert result.warnings == ()

    def test_processing_config_round_trip(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export())

        stored = result.processing_config()

        assert stored == ProcessingConfig(column="kWh", unit="kWh", voltage_v=400.0, power_factor=0.9)
        assert ProcessingConfig.from_dict(stored.to_dict()) == stored

    def test_vendor_preamble_export(self, hourly_export: Callable[..., str]) -> None:
        text = hourly_export(
            preamble=',"Shop12",2024-01-01,2024-01-14',
            header="RDate,RTime,kWh",
        )

        result = build_load_profile(text)

        assert result.ok
        assert result.meter_name == "Shop12"
        assert result.detection is not None
        assert result.detection.start_row == 2
        assert result.profile.weekday_days == 10

    def test_unparseable_rows_are_skipped(self, hourly_export: Callable[..., str]) -> None:
        text = hourly_export(days=7) + "Total,,168\n2024-01-08,00:00\n"

        result = build_load_profile(text)

        assert result.ok
        assert result.row_stats.missing_timestamp == 1
        assert result.row_stats.missing_value == 1
        assert result.profile.data_points == 7 * 24


class TestExplicitColumn:
    def test_override_selects_column(self) -> None:
        override = ParseConfigOverride(value_column_index=3)

        result = build_load_profile(_two_column_export(), override=override)

        assert result.ok
        assert result.value_column == "kWh B"
        assert max(range(24), key=lambda h: result.profile.weekday_profile[h]) == 7

    def test_reprocessing_is_deterministic(self) -> None:
        override = ParseConfigOverride(value_column_index=3)

        first = build_load_profile(_two_column_export(), override=override)
        second = build_load_profile(_two_column_export(), override=override)

        assert first.profile == second.profile
        assert first.profile.to_dict() == second.profile.to_dict()

    def test_stored_processing_config_matches_header_case_insensitively(self) -> None:
        stored = ProcessingConfig(column="KWH B", unit="kWh")

        result = build_load_profile(_two_column_export(), processing_config=stored)

        assert result.ok
        assert result.value_column == "kWh B"

    def test_unknown_stored_column_falls_back_to_detection(self) -> None:
        stored = ProcessingConfig(column="missing", unit="kWh")

        result = build_load_profile(_two_column_export(), processing_config=stored)

        assert result.ok
        assert result.value_column == "kWh A"

    def test_explicit_override_beats_stored_config(self) -> None:
        stored = ProcessingConfig(column="kWh B", unit="kWh")

        result = build_load_profile(
            _two_column_export(),
            processing_config=stored,
            override=ParseConfigOverride(value_column_index=2),
        )

        assert result.value_column == "kWh A"

    def test_merge_overrides_prefers_later_values(self) -> None:
        merged = merge_overrides(
            ParseConfigOverride(unit="kW", voltage_v=230.0),
            None,
            ParseConfigOverride(unit="kWh"),
        )

        assert merged == ParseConfigOverride(unit="kWh", voltage_v=230.0)
        assert merge_overrides(None, None) is None


# ---------------------------------------------------------------------------
# Value handling
# ---------------------------------------------------------------------------


class TestCumulative:
    def test_register_is_differenced(self) -> None:
        readings = [1000.0 + 2.0 * i for i in range(49)]

        result = build_load_profile(_register_export(readings))

        assert result.ok
        assert result.config is not None
        assert result.config.cumulative is True
        assert result.profile.data_points == 48
        assert result.profile.total_kwh == pytest.approx(96.0)
        assert any("flat" in warning for warning in result.warnings)

    def test_rollover_uses_current_reading(self) -> None:
        start = datetime(2024, 1, 1)
        readings = [
            (start, 99990.0),
            (start + timedelta(hours=1), 99995.0),
            (start + timedelta(hours=2), 3.0),
            (start + timedelta(hours=3), 7.0),
        ]

        deltas = difference_cumulative(readings)

        assert [value for _, value in deltas] == [5.0, 3.0, 4.0]


    def test_interval_series_opening_on_a_ramp_is_not_differenced(self) -> None:
        lines = ["Date,Time,kW"]
        start = datetime(2024, 1, 1)
        for day in range(14):
            for slot in range(96):
                instant = start + timedelta(days=day, minutes=15 * slot)
                if slot < 10:
                    value = 10.0 + slot
                elif instant.hour == 18:
                    value = 30.0
                else:
                    value = 10.0
                lines.append(f"{instant:%Y-%m-%d},{instant:%H:%M},{value}")

        result = build_load_profile("\n".join(lines))

        assert result.ok
        assert result.config.cumulative is False
        assert result.config.unit is Unit.KW
        assert result.profile.data_points == 14 * 96
        assert result.profile.detected_interval_minutes == 15
        assert result.profile.peak_kw == pytest.approx(30.0)
        assert result.profile.total_kwh == pytest.approx(14 * 1085.0 * 0.25)
        weekday = result.profile.weekday_profile
        assert weekday.index(max(weekday)) == 18

    def test_explicit_cumulative_flag_skips_the_full_series_check(self) -> None:
        readings = [1000.0 + 2.0 * i for i in range(25)] + [500.0] * 24

        result = build_load_profile(
            _register_export(readings),
            override=ParseConfigOverride(cumulative=True),
        )

        assert result.config.cumulative is True


class TestNegativeReadings:
    def _export(self) -> str:
        lines = ["Date,Time,kWh"]
        for hour in range(24):
            value = -1.0 if hour in (3, 4) else 2.0
            lines.append(f"2024-01-02,{hour:02d}:00,{value}")
        return "\n".join(lines)

    def test_filtered_by_default(self) -> None:
        result = build_load_profile(self._export())

        assert result.ok
        assert result.row_stats.negative == 2
        assert result.profile.data_points == 22

    def test_absolute_policy(self) -> None:
        override = ParseConfigOverride(negative_policy=NegativePolicy.ABSOLUTE)

        result = build_load_profile(self._export(), override=override)

        assert result.profile.data_points == 24
        assert result.profile.total_kwh == pytest.approx(22 * 2.0 + 2 * 1.0)


class TestFormats:
    def test_header_scan_window_follows_settings(self, hourly_export: Callable[..., str]) -> None:
        notes = "\n".join(f"note {i}" for i in range(12))
        text = notes + "\n" + hourly_export(days=1)

        result = build_load_profile(text, settings=PipelineSettings(header_scan_lines=20))

        assert result.detection.start_row == 13
        assert result.value_column == "kWh"

    def test_power_export_integrates_energy(self) -> None:
        start = datetime(2024, 1, 2)
        lines = ["Timestamp,Demand (kW)"]
        for i in range(48):
            instant = start + timedelta(minutes=30 * i)
            lines.append(f"{instant:%Y-%m-%d %H:%M},4.0")

        result = build_load_profile("\n".join(lines))

        assert result.ok
        assert result.config is not None
        assert result.config.unit is Unit.KW
        assert result.profile.detected_interval_minutes == 30
        assert result.profile.peak_kw == pytest.approx(4.0)
        assert result.profile.total_kwh == pytest.approx(96.0)

    def test_semicolon_and_decimal_comma(self) -> None:
        lines = ["Datum;Zeit;Verbrauch kWh"]
        for hour in range(24):
            lines.append(f"02.01.2024;{hour:02d}:00;1,5")

        result = build_load_profile("\n".join(lines))

        assert result.ok
        assert result.profile.total_kwh == pytest.approx(36.0)
        assert result.profile.date_range_start == date(2024, 1, 2)

    def test_space_padded_export(self) -> None:
        lines = ["Date        Time      kWh"]
        for hour in range(24):
            lines.append(f"2024-01-02  {hour:02d}:00     0.5")

        result = build_load_profile("\n".join(lines))

        assert result.ok
        assert result.profile.total_kwh == pytest.approx(12.0)

    def test_amps_with_explicit_voltage(self) -> None:
        lines = ["Date,Time,Current"]
        for hour in range(24):
            lines.append(f"2024-01-02,{hour:02d}:00,10")
        override = ParseConfigOverride(unit="A", voltage_v=400.0, power_factor=1.0)

        result = build_load_profile("\n".join(lines), override=override)

        assert result.ok
        assert result.profile.peak_kw == pytest.approx(3 ** 0.5 * 4.0)

    def test_delimiter_override(self) -> None:
        text = "Date|Time|kWh\n" + "\n".join(f"2024-01-02|{h:02d}:00|1" for h in range(24))
        override = ParseConfigOverride(delimiters=DelimiterSet(custom="|"))

        result = build_load_profile(text, override=override)

        assert result.ok
        assert result.profile.data_points == 24


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_empty_text(self) -> None:
        result = build_load_profile("")

        assert result.status is ProfileStatus.EMPTY_PROFILE
        assert not result.ok
        assert result.profile.weekday_profile == (0.0,) * 24

    def test_header_only(self) -> None:
        result = build_load_profile("Date,Time,kWh\n")

        assert result.status is ProfileStatus.EMPTY_PROFILE

    def test_all_zero_energy(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export(base_value=0.0, peak_value=0.0))

        assert result.status is ProfileStatus.EMPTY_PROFILE
        assert result.reason is not None

    def test_invalid_unit(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export(), override=ParseConfigOverride(unit="furlongs"))

        assert result.status is ProfileStatus.INVALID_UNIT
        assert "furlongs" in (result.reason or "")

    def test_invalid_power_factor(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export(), override=ParseConfigOverride(power_factor=1.5))

        assert result.status is ProfileStatus.INVALID_CONFIG

    def test_value_column_out_of_range(self, hourly_export: Callable[..., str]) -> None:
        result = build_load_profile(hourly_export(), override=ParseConfigOverride(value_column_index=9))

        assert result.status is ProfileStatus.INVALID_CONFIG

    def test_too_few_rows_keeps_best_values(self) -> None:
        text = "Date,Time,kWh\n" + "\n".join(f"2024-01-02,{h:02d}:00,1" for h in range(5))

        result = build_load_profile(text)

        assert result.status is ProfileStatus.VALIDATION_FAILURE
        assert result.profile.data_points == 5
        assert result.profile.total_kwh == pytest.approx(5.0)

    def test_min_rows_is_configurable(self) -> None:
        text = "Date,Time,kWh\n" + "\n".join(f"2024-01-02,{h:02d}:00,1" for h in range(5))

        result = build_load_profile(text, settings=PipelineSettings(min_data_rows=3))

        assert result.ok
        assert any("data points" in warning for warning in result.warnings)

    def test_no_date_column(self) -> None:
        text = "Reading\n" + "\n".join("1.0" for _ in range(30))

        result = build_load_profile(text)

        assert result.status is ProfileStatus.EMPTY_PROFILE


class TestPreview:
    def test_truncates_rows(self, hourly_export: Callable[..., str]) -> None:
        parsed = preview(hourly_export(days=2), max_rows=5)

        assert parsed.headers == ("Date", "Time", "kWh")
        assert len(parsed.rows) == 5
        assert parsed.rows[0] == ("2024-01-01", "00:00", "1.0")
        assert parsed.total_rows == 48

    def test_reports_preamble(self, hourly_export: Callable[..., str]) -> None:
        parsed = preview(
            hourly_export(days=1, preamble=',"Shop12",2024-01-01,2024-01-01', header="RDate,RTime,kWh")
        )

        assert parsed.headers == ("RDate", "RTime", "kWh")
        assert parsed.detection.preamble_meter_name == "Shop12"

    def test_empty_text(self) -> None:
        parsed = preview("")

        assert parsed.headers == ()
        assert parsed.total_rows == 0

"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from load_profile.models import DateOrder
from load_profile.pipeline import PipelineSettings


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_date_order_env(name: str, default: DateOrder) -> DateOrder:
    raw_value = _get_str_env(name, default.value).upper()
    try:
        return DateOrder(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class ProfilingSettings:
    """
    Runtime settings for load-profile processing.
    """

    default_voltage_v: float = 400.0
    default_power_factor: float = 0.9
    header_scan_lines: int = 10
    classifier_sample_rows: int = 10
    interval_sample_size: int = 200
    preview_rows: int = 20
    min_data_rows: int = 10
    batch_max_workers: int = 4
    date_order: DateOrder = DateOrder.DMY

    def to_pipeline_settings(self) -> PipelineSettings:
        return PipelineSettings(
            default_voltage_v=self.default_voltage_v,
            default_power_factor=self.default_power_factor,
            header_scan_lines=self.header_scan_lines,
            classifier_sample_rows=self.classifier_sample_rows,
            interval_sample_size=self.interval_sample_size,
            min_data_rows=self.min_data_rows,
            date_order=self.date_order,
        )


@lru_cache(maxsize=1)
def get_profiling_settings() -> ProfilingSettings:
    """
    Return cached load-profile settings from environment variables.
    """

    power_factor = _get_float_env("LOAD_PROFILE_DEFAULT_POWER_FACTOR", 0.9)
    if not (0.0 < power_factor <= 1.0):
        power_factor = 0.9
    voltage = _get_float_env("LOAD_PROFILE_DEFAULT_VOLTAGE_V", 400.0)
    if voltage <= 0:
        voltage = 400.0

    return ProfilingSettings(
        default_voltage_v=voltage,
        default_power_factor=power_factor,
        header_scan_lines=max(2, _get_int_env("LOAD_PROFILE_HEADER_SCAN_LINES", 10)),
        classifier_sample_rows=max(1, _get_int_env("LOAD_PROFILE_CLASSIFIER_SAMPLE_ROWS", 10)),
        interval_sample_size=max(2, _get_int_env("LOAD_PROFILE_INTERVAL_SAMPLE_SIZE", 200)),
        preview_rows=max(1, _get_int_env("LOAD_PROFILE_PREVIEW_ROWS", 20)),
        min_data_rows=max(1, _get_int_env("LOAD_PROFILE_MIN_DATA_ROWS", 10)),
        batch_max_workers=max(1, _get_int_env("LOAD_PROFILE_BATCH_MAX_WORKERS", 4)),
        date_order=_get_date_order_env("LOAD_PROFILE_DATE_ORDER", DateOrder.DMY),
    )

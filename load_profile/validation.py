"""
load_profile/validation.py

Post-aggregation sanity checks.

Failures make a profile unfit for storage; warnings are informational and
travel with an otherwise valid result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from load_profile.constants import (
    FLAT_LINE_TOLERANCE,
    IMPLAUSIBLE_DEMAND_KW,
    MIN_REPRESENTATIVE_POINTS,
)
from load_profile.models import LoadProfile


@dataclass(frozen=True)
class ProfileValidation:
    is_valid: bool
    reason: str | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)


def validate_profile(profile: LoadProfile) -> ProfileValidation:
    """
    Check an aggregated profile.

    Returns:
        ProfileValidation whose ``reason`` is human readable when invalid.
    """

    vectors = profile.weekday_profile + profile.weekend_profile
    if not all(math.isfinite(value) for value in vectors):
        return ProfileValidation(False, "Profile contains non-finite values.")
    if profile.weekday_days == 0 and profile.weekend_days == 0:
        return ProfileValidation(False, "No weekday or weekend days were observed.")
    if profile.peak_kw <= 0:
        return ProfileValidation(False, f"Peak demand must be positive, got {profile.peak_kw:g} kW.")

    warnings: list[str] = []
    observed = [
        vector
        for vector, days in (
            (profile.weekday_profile, profile.weekday_days),
            (profile.weekend_profile, profile.weekend_days),
        )
        if days
    ]
    if observed and all(max(v) - min(v) <= FLAT_LINE_TOLERANCE for v in observed):
        warnings.append("Profile is flat; every hour carries the same share.")
    if profile.peak_kw > IMPLAUSIBLE_DEMAND_KW:
        warnings.append(
            f"Peak demand {profile.peak_kw:g} kW exceeds {IMPLAUSIBLE_DEMAND_KW:g} kW; check the unit."
        )
    if profile.data_points < MIN_REPRESENTATIVE_POINTS:
        warnings.append(
            f"Only {profile.data_points} data points; at least {MIN_REPRESENTATIVE_POINTS} "
            "are needed for a representative profile."
        )
    return ProfileValidation(True, None, tuple(warnings))

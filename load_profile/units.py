"""
load_profile/units.py

Unit normalization for meter readings.

Formulas
--------
Energy (canonical kWh):
    kWh  -> value
    Wh   -> value / 1000
    MWh  -> value * 1000
    kVAh -> value * power_factor

Power (canonical kW):
    kW   -> value
    W    -> value / 1000
    MW   -> value * 1000
    kVA  -> value * power_factor
    A    -> sqrt(3) * voltage_v * amps * power_factor / 1000

Whether a unit is energy or power is a property of the unit itself; callers
never choose the branch.
"""

from __future__ import annotations

import math
import re
from enum import Enum

from load_profile.constants import DEFAULT_POWER_FACTOR, DEFAULT_VOLTAGE_V


class InvalidUnitError(ValueError):
    """
    Raised when a unit string is not one of the supported meter units.
    """

    def __init__(self, unit: object) -> None:
        allowed = ", ".join(member.value for member in Unit)
        super().__init__(f"Unsupported unit {unit!r}. Allowed values: {allowed}.")
        self.unit = unit


class UnitClass(str, Enum):
    """
    Physical quantity a unit measures.
    """

    ENERGY = "energy"
    POWER = "power"


class Unit(str, Enum):
    """
    Closed set of units found in meter exports.
    """

    KW = "kW"
    W = "W"
    MW = "MW"
    KVA = "kVA"
    A = "A"
    KWH = "kWh"
    WH = "Wh"
    MWH = "MWh"
    KVAH = "kVAh"

    @property
    def unit_class(self) -> UnitClass:
        if self in _ENERGY_UNITS:
            return UnitClass.ENERGY
        return UnitClass.POWER

    @property
    def is_energy(self) -> bool:
        return self.unit_class is UnitClass.ENERGY

    @classmethod
    def parse(cls, value: "Unit | str") -> "Unit":
        """
        Resolve a unit from an enum member or a case-insensitive spelling.

        Raises InvalidUnitError for anything outside the supported set.
        """

        if isinstance(value, Unit):
            return value
        if not isinstance(value, str):
            raise InvalidUnitError(value)
        key = value.strip().lower()
        unit = _UNIT_LOOKUP.get(key)
        if unit is None:
            raise InvalidUnitError(value)
        return unit

    @classmethod
    def canonical_for(cls, unit_class: UnitClass) -> "Unit":
        return cls.KWH if unit_class is UnitClass.ENERGY else cls.KW


_ENERGY_UNITS = frozenset({Unit.KWH, Unit.WH, Unit.MWH, Unit.KVAH})

_UNIT_LOOKUP: dict[str, Unit] = {member.value.lower(): member for member in Unit}
_UNIT_LOOKUP.update(
    {
        "amp": Unit.A,
        "amps": Unit.A,
        "ampere": Unit.A,
        "watt": Unit.W,
        "watts": Unit.W,
    }
)


def _validate_power_factor(power_factor: float) -> None:
    if not (0.0 < power_factor <= 1.0) or math.isnan(power_factor):
        raise ValueError(f"power_factor must be in (0, 1], got {power_factor!r}.")


def to_kwh(value: float, unit: Unit | str, power_factor: float = DEFAULT_POWER_FACTOR) -> float:
    """
    Convert an energy reading to kWh.
    """

    resolved = Unit.parse(unit)
    if not resolved.is_energy:
        raise InvalidUnitError(resolved.value)
    if resolved is Unit.KWH:
        return value
    if resolved is Unit.WH:
        return value / 1000.0
    if resolved is Unit.MWH:
        return value * 1000.0
    _validate_power_factor(power_factor)
    return value * power_factor


def to_kw(
    value: float,
    unit: Unit | str,
    voltage_v: float = DEFAULT_VOLTAGE_V,
    power_factor: float = DEFAULT_POWER_FACTOR,
) -> float:
    """
    Convert a power (or current) reading to kW.

    Current readings use the balanced three-phase relation
    ``P = sqrt(3) * V_line * I * PF``.
    """

    resolved = Unit.parse(unit)
    if resolved.is_energy:
        raise InvalidUnitError(resolved.value)
    if resolved is Unit.KW:
        return value
    if resolved is Unit.W:
        return value / 1000.0
    if resolved is Unit.MW:
        return value * 1000.0
    _validate_power_factor(power_factor)
    if resolved is Unit.KVA:
        return value * power_factor
    return math.sqrt(3) * voltage_v * value * power_factor / 1000.0


def normalize(
    raw_value: float,
    unit: Unit | str,
    voltage_v: float = DEFAULT_VOLTAGE_V,
    power_factor: float = DEFAULT_POWER_FACTOR,
) -> float:
    """
    Convert a raw reading to kWh (energy units) or kW (power units).
    """

    resolved = Unit.parse(unit)
    if resolved.is_energy:
        return to_kwh(raw_value, resolved, power_factor)
    return to_kw(raw_value, resolved, voltage_v, power_factor)


def detect_unit_from_header(header: str) -> Unit | None:
    """
    Return the unit spelled out in a column header, if any.

    Longer spellings are checked first so ``kWh`` is not read as ``kW``.
    """

    h = header.strip().lower()
    if not h:
        return None
    if "mwh" in h:
        return Unit.MWH
    if "kvah" in h:
        return Unit.KVAH
    if "kwh" in h:
        return Unit.KWH
    if "kva" in h and "kvar" not in h:
        return Unit.KVA
    if "mw" in h:
        return Unit.MW
    if "kw" in h:
        return Unit.KW
    if re.search(r"(?<![a-z])wh(?![a-z])", h):
        return Unit.WH
    if re.search(r"(?<![a-z])w(?![a-z])", h) or "watt" in h:
        return Unit.W
    if re.search(r"(?<![a-z])a(?![a-z])", h) or re.search(r"\bamps?\b|ampere", h) or "current" in h:
        return Unit.A
    return None

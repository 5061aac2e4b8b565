"""
load_profile/column_classifier.py

Column role assignment and value-column scoring.

Roles come from header keywords. The value column is the highest-scoring
non-temporal column, where the score adds a header-keyword weight and a
boost for mostly-numeric samples. The unit guess is a small vote between
energy and power evidence; a running-total signature settles it as energy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from load_profile.constants import (
    CLASSIFIER_SAMPLE_ROWS,
    CUMULATIVE_PAIR_RATIO,
    DATE_HEADER_TOKENS,
    DATETIME_SAMPLE_RATIO,
    ENERGY_MAGNITUDE_THRESHOLD,
    EXACT_HEADER_WEIGHTS,
    EXPLICIT_UNIT_VOTE,
    KEYWORD_UNIT_VOTE,
    MAGNITUDE_UNIT_VOTE,
    MIN_CUMULATIVE_SAMPLES,
    NUMERIC_BOOST,
    NUMERIC_RATIO_THRESHOLD,
    PARTIAL_HEADER_WEIGHTS,
    TIME_HEADER_TOKENS,
)
from load_profile.dates import looks_like_datetime
from load_profile.models import ColumnAssignment, ColumnRole, Row
from load_profile.numbers import numeric_ratio, parse_number
from load_profile.units import Unit, UnitClass, detect_unit_from_header

logger = logging.getLogger(__name__)

_TEMPORAL_ROLES = (ColumnRole.DATE, ColumnRole.TIME, ColumnRole.DATETIME)


@dataclass(frozen=True)
class ColumnScore:
    index: int
    header: str
    header_score: int
    numeric_ratio: float
    total: int


@dataclass(frozen=True)
class Classification:
    """
    Result of classifying one file's columns.

    ``value_column_index`` is ``None`` only when no column holds numbers.
    """

    assignments: tuple[ColumnAssignment, ...]
    value_column_index: int | None
    unit: Unit
    is_cumulative: bool
    scores: tuple[ColumnScore, ...] = ()

    def role_of(self, index: int) -> ColumnRole | None:
        for assignment in self.assignments:
            if assignment.index == index:
                return assignment.role
        return None


# ---------------------------------------------------------------------------
# Header heuristics
# ---------------------------------------------------------------------------


def header_role(header: str) -> ColumnRole:
    """
    Keyword role of a header: DATE, TIME or TEXT.
    """

    lowered = header.strip().lower()
    if any(token in lowered for token in DATE_HEADER_TOKENS):
        return ColumnRole.DATE
    if "datetime" not in lowered and any(token in lowered for token in TIME_HEADER_TOKENS):
        return ColumnRole.TIME
    return ColumnRole.TEXT


def header_weight(header: str) -> tuple[int, UnitClass | None]:
    """
    Keyword weight of a header and the unit class the keyword implies.
    """

    lowered = header.strip().lower()
    if not lowered:
        return 0, None
    exact = EXACT_HEADER_WEIGHTS.get(lowered)
    if exact is not None:
        return exact[0], UnitClass(exact[1])
    for tokens, weight, unit_class in PARTIAL_HEADER_WEIGHTS:
        if any(token in lowered for token in tokens):
            return weight, UnitClass(unit_class)
    return 0, None


# ---------------------------------------------------------------------------
# Sample heuristics
# ---------------------------------------------------------------------------


def column_samples(rows: Sequence[Row], index: int) -> list[str | None]:
    return [row[index] if index < len(row) else None for row in rows]


def is_cumulative_series(values: Sequence[float]) -> bool:
    """
    True when almost every consecutive pair strictly increases.
    """

    if len(values) < MIN_CUMULATIVE_SAMPLES:
        return False
    pairs = len(values) - 1
    increasing = sum(1 for a, b in zip(values, values[1:]) if b > a)
    return increasing / pairs >= CUMULATIVE_PAIR_RATIO


def _datetime_ratio(samples: Sequence[str | None]) -> float:
    present = [value for value in samples if value]
    if not present:
        return 0.0
    return sum(1 for value in present if looks_like_datetime(value)) / len(present)


def guess_unit(
    header: str,
    samples: Sequence[str | None],
    cumulative: bool | None = None,
) -> tuple[Unit, bool]:
    """
    Vote between energy and power for one column.

    A running-total signature in the samples forces energy. Pass
    ``cumulative`` to skip that check when the full series already settled it.

    Returns:
        ``(unit, is_cumulative)``. An explicit unit in the header is kept when
        its class wins the vote; otherwise the canonical unit of the winner.
    """

    numbers = [n for n in (parse_number(value) for value in samples) if n is not None]
    if cumulative is None:
        cumulative = is_cumulative_series(numbers)

    explicit = detect_unit_from_header(header)
    votes = {UnitClass.ENERGY: 0.0, UnitClass.POWER: 0.0}
    if explicit is not None:
        votes[explicit.unit_class] += EXPLICIT_UNIT_VOTE
    _, keyword_class = header_weight(header)
    if keyword_class is not None:
        votes[keyword_class] += KEYWORD_UNIT_VOTE
    if numbers and max(abs(n) for n in numbers) > ENERGY_MAGNITUDE_THRESHOLD:
        votes[UnitClass.ENERGY] += MAGNITUDE_UNIT_VOTE

    if cumulative:
        winner = UnitClass.ENERGY
    elif votes[UnitClass.POWER] > votes[UnitClass.ENERGY]:
        winner = UnitClass.POWER
    else:
        winner = UnitClass.ENERGY

    if explicit is not None and explicit.unit_class is winner:
        return explicit, cumulative
    return Unit.canonical_for(winner), cumulative


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def classify(
    headers: Sequence[str],
    sample_rows: Sequence[Row],
    sample_size: int = CLASSIFIER_SAMPLE_ROWS,
) -> Classification:
    """
    Assign column roles and pick the value column.

    Args:
        headers: Header fields.
        sample_rows: Leading data rows; only ``sample_size`` are inspected.
        sample_size: Sample cap.

    Returns:
        Classification with one assignment per header.
    """

    rows = list(sample_rows[:sample_size])
    roles: list[ColumnRole] = []
    for index, header in enumerate(headers):
        role = header_role(header)
        if role is not ColumnRole.TEXT:
            if _datetime_ratio(column_samples(rows, index)) >= DATETIME_SAMPLE_RATIO:
                role = ColumnRole.DATETIME
        roles.append(role)

    if not any(role.carries_date for role in roles):
        for index, role in enumerate(roles):
            if role is ColumnRole.TEXT and _datetime_ratio(column_samples(rows, index)) >= DATETIME_SAMPLE_RATIO:
                roles[index] = ColumnRole.DATETIME
                break

    scores: list[ColumnScore] = []
    best: ColumnScore | None = None
    for index, header in enumerate(headers):
        if roles[index] in _TEMPORAL_ROLES:
            continue
        weight, _ = header_weight(header)
        ratio = numeric_ratio(column_samples(rows, index))
        total = weight + (NUMERIC_BOOST if ratio >= NUMERIC_RATIO_THRESHOLD else 0)
        score = ColumnScore(index, header, weight, ratio, total)
        scores.append(score)
        if total > 0 and (best is None or total > best.total):
            best = score

    value_index: int | None = best.index if best else None
    if value_index is None:
        value_index = next((s.index for s in scores if s.numeric_ratio > 0), None)

    unit, cumulative = Unit.KWH, False
    if value_index is not None:
        roles[value_index] = ColumnRole.VALUE
        unit, cumulative = guess_unit(headers[value_index], column_samples(rows, value_index))

    assignments = tuple(
        ColumnAssignment(index=index, header=header, role=roles[index])
        for index, header in enumerate(headers)
    )
    logger.debug(
        "Columns classified: value_column=%s unit=%s cumulative=%s",
        value_index,
        unit.value,
        cumulative,
    )
    return Classification(
        assignments=assignments,
        value_column_index=value_index,
        unit=unit,
        is_cumulative=cumulative,
        scores=tuple(scores),
    )

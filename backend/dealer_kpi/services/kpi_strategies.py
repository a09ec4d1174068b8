"""
Per-strategy KPI arithmetic.

Shared by the computation engine and the recursive value resolver so both
derive formula, target, percentage and cumulative numbers the same way. None
of these functions raise; missing or malformed data degrades to 0.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Optional, Protocol

from dealer_kpi.models.enums import CalculationType
from dealer_kpi.models.kpi import BrandData, Kpi
from dealer_kpi.services.reference_resolver import ReferenceResolver
from dealer_kpi.utils.expression import evaluate_expression
from dealer_kpi.utils.formula_tokens import substitute_references


class ValueSource(Protocol):
    """Anything that can answer day and month-to-date values for a KPI id."""

    def day_value(self, kpi_id: str, day: int) -> float: ...

    def cumulative_value(self, kpi_id: str, day: int) -> float: ...


def to_number(value: Any) -> float:
    """Coerce a stored value to a finite float; absent or invalid counts as 0."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def finite_or_none(value: Any) -> Optional[float]:
    """Like to_number, but absent, invalid or non-finite values stay absent."""
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def has_ratio(kpi: Kpi) -> bool:
    return (
        kpi.calculation_type == CalculationType.PERCENTAGE
        and bool(kpi.numerator_kpi_id)
        and bool(kpi.denominator_kpi_id)
    )


def ratio(numerator: float, denominator: float, is_percent: bool) -> float:
    if denominator == 0:
        return 0.0
    value = numerator / denominator
    if is_percent:
        value *= 100
    return value if math.isfinite(value) else 0.0


def source_day_sum(brand_data: BrandData, kpi_id: str, day: int) -> float:
    """Sum of the cumulative sources' raw entries for one day."""
    return sum(
        to_number(brand_data.raw_value(source_id, day))
        for source_id in brand_data.cumulative_sources.get(kpi_id, [])
    )


def source_cumulative_sum(brand_data: BrandData, kpi_id: str, day: int) -> float:
    return sum(source_day_sum(brand_data, kpi_id, d) for d in range(1, day + 1))


def raw_cumulative_sum(brand_data: BrandData, kpi_id: str, day: int) -> float:
    row = brand_data.values.get(kpi_id, {})
    return sum(to_number(row.get(d)) for d in range(1, day + 1))


def evaluate_formula(
    expression: str,
    references: ReferenceResolver,
    lookup: Callable[[str], float],
) -> Optional[float]:
    """Substitute each reference with lookup(kpi_id), then evaluate."""

    def replace(token: str) -> float:
        ref_id = references.resolve(token)
        return lookup(ref_id) if ref_id else 0.0

    return evaluate_expression(substitute_references(expression, replace))


def formula_day_value(
    expression: str,
    day: int,
    references: ReferenceResolver,
    values: ValueSource,
) -> float:
    result = evaluate_formula(expression, references, lambda ref_id: values.day_value(ref_id, day))
    return result if result is not None else 0.0


def formula_cumulative_value(
    expression: str,
    day: int,
    references: ReferenceResolver,
    values: ValueSource,
) -> float:
    return sum(formula_day_value(expression, d, references, values) for d in range(1, day + 1))


def target_cumulative_value(
    expression: str,
    day: int,
    references: ReferenceResolver,
    values: ValueSource,
) -> float:
    """Target formulas are evaluated once, against month-to-date values."""
    result = evaluate_formula(
        expression, references, lambda ref_id: values.cumulative_value(ref_id, day)
    )
    return result if result is not None else 0.0

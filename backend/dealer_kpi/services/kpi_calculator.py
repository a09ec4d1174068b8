"""
KPI calculation engine.

Derive the daily value, month-to-date value and target of every KPI in a
brand's KPI set for the selected day of month. Pure and synchronous: each call
recomputes from the given BrandData and never raises for missing or malformed
data (it degrades to 0 or an absent value instead).
"""

from __future__ import annotations

from typing import Optional

from dealer_kpi.core.config import get_settings
from dealer_kpi.core.logger import setup_logger
from dealer_kpi.models.enums import CalculationType
from dealer_kpi.models.kpi import BrandData, ComputedValue, EvaluationMode, Kpi
from dealer_kpi.services import kpi_strategies as strategies
from dealer_kpi.services.formula_validator import find_formula_cycles
from dealer_kpi.services.reference_resolver import ReferenceResolver
from dealer_kpi.services.unit_utils import get_unit_meta
from dealer_kpi.services.value_resolver import RecursiveValueResolver, ValueResolver

logger = setup_logger(__name__)


def _daily_value(
    kpi: Kpi,
    brand_data: BrandData,
    day: int,
    resolver: ValueResolver,
    references: ReferenceResolver,
    is_percent: bool,
) -> Optional[float]:
    calc = kpi.calculation_type
    if kpi.only_cumulative or calc == CalculationType.TARGET:
        return None
    if calc == CalculationType.CUMULATIVE:
        return strategies.source_day_sum(brand_data, kpi.id, day)
    if calc == CalculationType.FORMULA:
        expression = brand_data.formula_expressions.get(kpi.id)
        if not expression:
            return None
        return strategies.formula_day_value(expression, day, references, resolver)
    if strategies.has_ratio(kpi):
        return strategies.ratio(
            resolver.day_value(kpi.numerator_kpi_id, day),
            resolver.day_value(kpi.denominator_kpi_id, day),
            is_percent,
        )
    # direct, or a percentage KPI missing its numerator/denominator
    raw = brand_data.raw_value(kpi.id, day)
    return None if raw is None else strategies.to_number(raw)


def _cumulative_value(
    kpi: Kpi,
    brand_data: BrandData,
    day: int,
    resolver: ValueResolver,
    references: ReferenceResolver,
    is_percent: bool,
) -> float:
    calc = kpi.calculation_type
    if kpi.only_cumulative:
        return strategies.to_number(brand_data.cumulative_overrides.get(kpi.id))
    if calc == CalculationType.CUMULATIVE:
        return strategies.source_cumulative_sum(brand_data, kpi.id, day)

    expression = brand_data.formula_expressions.get(kpi.id)
    if calc == CalculationType.FORMULA:
        if not expression:
            return 0.0
        return strategies.formula_cumulative_value(expression, day, references, resolver)
    if calc == CalculationType.TARGET:
        if not expression:
            return 0.0
        return strategies.target_cumulative_value(expression, day, references, resolver)
    if strategies.has_ratio(kpi):
        return strategies.ratio(
            resolver.cumulative_value(kpi.numerator_kpi_id, day),
            resolver.cumulative_value(kpi.denominator_kpi_id, day),
            is_percent,
        )
    return strategies.raw_cumulative_sum(brand_data, kpi.id, day)


def _target_value(kpi: Kpi, brand_data: BrandData) -> Optional[float]:
    # a non-finite target is treated as missing
    monthly = strategies.finite_or_none(brand_data.monthly_targets.get(kpi.id))
    if monthly is not None:
        return monthly
    if kpi.calculation_type == CalculationType.TARGET:
        return strategies.finite_or_none(kpi.static_target)
    return None


def compute_kpi_value(
    kpi: Kpi,
    brand_data: BrandData,
    day: int,
    resolver: ValueResolver,
    references: ReferenceResolver,
) -> ComputedValue:
    """Compute one KPI using the resolver for any KPIs it references."""
    unit = brand_data.unit_for(kpi)
    meta = get_unit_meta(unit)
    daily = _daily_value(kpi, brand_data, day, resolver, references, meta.is_percent)
    cumulative = _cumulative_value(kpi, brand_data, day, resolver, references, meta.is_percent)
    # sums of large entries can still overflow
    return ComputedValue(
        daily=None if daily is None else strategies.to_number(daily),
        cumulative=strategies.to_number(cumulative),
        target_value=_target_value(kpi, brand_data),
        unit=unit,
        is_percent=meta.is_percent,
        is_tl=meta.is_tl,
        calculation_type=kpi.calculation_type,
        only_cumulative=kpi.only_cumulative,
    )


def compute_brand_values(
    brand_data: BrandData,
    day: int,
    mode: Optional[EvaluationMode] = None,
) -> dict[str, ComputedValue]:
    """
    Compute every KPI of one brand for the selected day.

    Args:
        brand_data: Assembled inputs for one brand/category/month
        day: Day of month (1..31), validated by the caller
        mode: "legacy" or "recursive"; defaults to KPI_EVALUATION_MODE

    Returns:
        Mapping of KPI id to its computed value
    """
    mode = mode or get_settings().KPI_EVALUATION_MODE
    references = ReferenceResolver(brand_data.kpis)
    if mode == "recursive":
        resolver: ValueResolver = RecursiveValueResolver(brand_data, references)
    else:
        resolver = ValueResolver(brand_data)

    for cycle in find_formula_cycles(brand_data):
        logger.warning(f"KPI reference cycle: {' -> '.join(cycle)}")

    logger.debug(f"Computing {len(brand_data.kpis)} KPIs for day {day} ({mode} mode)")
    return {
        kpi.id: compute_kpi_value(kpi, brand_data, day, resolver, references)
        for kpi in brand_data.kpis
    }

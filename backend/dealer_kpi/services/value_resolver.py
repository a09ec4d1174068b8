"""
Value lookup for KPIs referenced from another KPI's formula.

ValueResolver answers with raw entries and cumulative-source sums only: a
referenced formula, percentage or target KPI with no raw entry contributes 0.
RecursiveValueResolver evaluates the referenced KPI's own strategy instead,
memoized per call, and counts a reference back into a KPI that is still being
evaluated as 0. Values that went through such a cut are not memoized, so a
KPI in a cycle gets the same value whatever its position in the KPI list.
"""

from __future__ import annotations

from typing import Callable, Optional

from dealer_kpi.core.logger import setup_logger
from dealer_kpi.models.enums import CalculationType
from dealer_kpi.models.kpi import BrandData, Kpi
from dealer_kpi.services import kpi_strategies as strategies
from dealer_kpi.services.reference_resolver import ReferenceResolver
from dealer_kpi.services.unit_utils import get_unit_meta

logger = setup_logger(__name__)


class ValueResolver:
    """Day and month-to-date values of referenced KPIs."""

    def __init__(self, brand_data: BrandData):
        self.brand_data = brand_data
        self._kpis: dict[str, Kpi] = {}
        for kpi in brand_data.kpis:
            self._kpis.setdefault(kpi.id, kpi)

    def get_kpi(self, kpi_id: str) -> Optional[Kpi]:
        return self._kpis.get(kpi_id)

    def day_value(self, kpi_id: str, day: int) -> float:
        raw = self.brand_data.raw_value(kpi_id, day)
        if raw is not None:
            return strategies.to_number(raw)
        kpi = self.get_kpi(kpi_id)
        if kpi is None or kpi.only_cumulative:
            return 0.0
        if kpi.calculation_type == CalculationType.CUMULATIVE:
            return strategies.source_day_sum(self.brand_data, kpi_id, day)
        return 0.0

    def cumulative_value(self, kpi_id: str, day: int) -> float:
        kpi = self.get_kpi(kpi_id)
        if kpi is None:
            return 0.0
        if kpi.only_cumulative:
            return strategies.to_number(self.brand_data.cumulative_overrides.get(kpi_id))
        if kpi.calculation_type == CalculationType.CUMULATIVE:
            return strategies.source_cumulative_sum(self.brand_data, kpi_id, day)
        return strategies.raw_cumulative_sum(self.brand_data, kpi_id, day)


class RecursiveValueResolver(ValueResolver):
    """ValueResolver that also evaluates referenced formula/percentage/target KPIs."""

    def __init__(self, brand_data: BrandData, references: Optional[ReferenceResolver] = None):
        super().__init__(brand_data)
        self.references = references or ReferenceResolver(brand_data.kpis)
        self._memo: dict[tuple[str, str, int], float] = {}
        self._visiting: set[tuple[str, str, int]] = set()
        self._reported_cycles: set[str] = set()
        self._cycle_cuts = 0

    def day_value(self, kpi_id: str, day: int) -> float:
        return self._memoized("day", kpi_id, day, self._compute_day_value)

    def cumulative_value(self, kpi_id: str, day: int) -> float:
        return self._memoized("cumulative", kpi_id, day, self._compute_cumulative_value)

    def _memoized(
        self,
        kind: str,
        kpi_id: str,
        day: int,
        compute: Callable[[str, int], float],
    ) -> float:
        key = (kind, kpi_id, day)
        if key in self._memo:
            return self._memo[key]
        if key in self._visiting:
            self._cycle_cuts += 1
            self._report_cycle(kpi_id)
            return 0.0
        cuts_before = self._cycle_cuts
        self._visiting.add(key)
        try:
            value = compute(kpi_id, day)
        finally:
            self._visiting.discard(key)
        # a value that depended on a cut cycle depends on where the walk started
        if self._cycle_cuts == cuts_before:
            self._memo[key] = value
        return value

    def _report_cycle(self, kpi_id: str) -> None:
        if kpi_id in self._reported_cycles:
            return
        self._reported_cycles.add(kpi_id)
        logger.warning(f"Circular KPI reference through {kpi_id}; counting it as 0")

    def _is_percent(self, kpi: Kpi) -> bool:
        return get_unit_meta(self.brand_data.unit_for(kpi)).is_percent

    def _compute_day_value(self, kpi_id: str, day: int) -> float:
        raw = self.brand_data.raw_value(kpi_id, day)
        if raw is not None:
            return strategies.to_number(raw)
        kpi = self.get_kpi(kpi_id)
        if kpi is None or kpi.only_cumulative:
            return 0.0

        calc = kpi.calculation_type
        if calc == CalculationType.CUMULATIVE:
            return strategies.source_day_sum(self.brand_data, kpi_id, day)
        if calc == CalculationType.FORMULA:
            expression = self.brand_data.formula_expressions.get(kpi_id)
            if not expression:
                return 0.0
            return strategies.formula_day_value(expression, day, self.references, self)
        if strategies.has_ratio(kpi):
            return strategies.ratio(
                self.day_value(kpi.numerator_kpi_id, day),
                self.day_value(kpi.denominator_kpi_id, day),
                self._is_percent(kpi),
            )
        # direct without an entry, and target KPIs, have no day value
        return 0.0

    def _compute_cumulative_value(self, kpi_id: str, day: int) -> float:
        kpi = self.get_kpi(kpi_id)
        if kpi is None:
            return 0.0
        if kpi.only_cumulative:
            return strategies.to_number(self.brand_data.cumulative_overrides.get(kpi_id))

        calc = kpi.calculation_type
        expression = self.brand_data.formula_expressions.get(kpi_id)
        if calc == CalculationType.CUMULATIVE:
            return strategies.source_cumulative_sum(self.brand_data, kpi_id, day)
        if calc == CalculationType.FORMULA:
            if not expression:
                return 0.0
            return strategies.formula_cumulative_value(expression, day, self.references, self)
        if calc == CalculationType.TARGET:
            if not expression:
                return 0.0
            return strategies.target_cumulative_value(expression, day, self.references, self)
        if strategies.has_ratio(kpi):
            return strategies.ratio(
                self.cumulative_value(kpi.numerator_kpi_id, day),
                self.cumulative_value(kpi.denominator_kpi_id, day),
                self._is_percent(kpi),
            )
        return strategies.raw_cumulative_sum(self.brand_data, kpi_id, day)

"""Pydantic models (schemas) for the application."""

from dealer_kpi.models.enums import (
    CalculationType,
    KpiSortMode,
    ProgressStatus,
    TrendDirection,
)
from dealer_kpi.models.kpi import BrandData, ComputedValue, EvaluationMode, Kpi, UnitMeta
from dealer_kpi.models.overview import KpiCell, KpiOverview, KpiOverviewRow, Trend

__all__ = [
    # Enums
    "CalculationType",
    "KpiSortMode",
    "ProgressStatus",
    "TrendDirection",
    # Engine contract
    "BrandData",
    "ComputedValue",
    "EvaluationMode",
    "Kpi",
    "UnitMeta",
    # Overview
    "KpiCell",
    "KpiOverview",
    "KpiOverviewRow",
    "Trend",
]

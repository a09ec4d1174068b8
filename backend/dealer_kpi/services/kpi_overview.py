"""
Multi-brand KPI overview.

Runs the engine once per brand and lays the results out as ordered KPI rows
with one cell per brand, the way the daily dashboard table shows them. The
previous day is computed too so each cell carries a day-over-day trend.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from dealer_kpi.core.config import Settings, get_settings
from dealer_kpi.models.enums import KpiSortMode
from dealer_kpi.models.kpi import BrandData, ComputedValue, EvaluationMode, Kpi
from dealer_kpi.models.overview import KpiCell, KpiOverview, KpiOverviewRow, Trend
from dealer_kpi.services.kpi_calculator import compute_brand_values
from dealer_kpi.services.kpi_progress import (
    average_progress,
    order_kpis,
    progress_percent,
    progress_status,
    remaining_to_target,
    trend,
)


def build_cell(
    value: ComputedValue,
    settings: Optional[Settings] = None,
    previous: Optional[ComputedValue] = None,
) -> KpiCell:
    progress = progress_percent(value.cumulative, value.target_value)
    day_trend = Trend()
    if value.daily is not None and previous is not None:
        day_trend = trend(value.daily, previous.daily, settings)
    return KpiCell(
        **value.model_dump(),
        progress_percent=progress,
        status=progress_status(progress, settings),
        remaining_to_target=remaining_to_target(value.cumulative, value.target_value),
        trend=day_trend,
    )


def _union_kpis(brands: Mapping[str, BrandData]) -> list[Kpi]:
    seen: dict[str, Kpi] = {}
    for brand_data in brands.values():
        for kpi in brand_data.kpis:
            seen.setdefault(kpi.id, kpi)
    return list(seen.values())


def compute_overview(
    brands: Mapping[str, BrandData],
    day: int,
    sort_mode: KpiSortMode = KpiSortMode.NAME,
    ordered_ids: Optional[Sequence[str]] = None,
    mode: Optional[EvaluationMode] = None,
    settings: Optional[Settings] = None,
) -> KpiOverview:
    """
    Compute every brand and assemble the ordered overview.

    Args:
        brands: BrandData keyed by brand id, in display order
        day: Day of month (1..31)
        sort_mode: Row ordering when no manual order is given
        ordered_ids: Manual KPI order; overrides sort_mode when non-empty
        mode: Engine evaluation mode, defaults to KPI_EVALUATION_MODE
    """
    settings = settings or get_settings()
    mode = mode or settings.KPI_EVALUATION_MODE
    computed_by_brand = {
        str(brand_id): compute_brand_values(brand_data, day, mode)
        for brand_id, brand_data in brands.items()
    }
    previous_by_brand: dict[str, dict[str, ComputedValue]] = {}
    if day > 1:
        previous_by_brand = {
            str(brand_id): compute_brand_values(brand_data, day - 1, mode)
            for brand_id, brand_data in brands.items()
        }

    rows: list[KpiOverviewRow] = []
    for kpi in order_kpis(_union_kpis(brands), computed_by_brand, sort_mode, ordered_ids):
        cells = {
            brand_id: build_cell(
                computed[kpi.id],
                settings,
                previous=previous_by_brand.get(brand_id, {}).get(kpi.id),
            )
            for brand_id, computed in computed_by_brand.items()
            if kpi.id in computed
        }
        rows.append(
            KpiOverviewRow(
                kpi=kpi,
                average_progress=average_progress(kpi.id, computed_by_brand),
                cells=cells,
            )
        )
    return KpiOverview(day=day, sort_mode=sort_mode, rows=rows)

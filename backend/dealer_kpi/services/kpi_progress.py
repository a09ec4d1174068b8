"""
Progress, status and trend derivations for the KPI dashboard.

All functions work on engine output (ComputedValue) and settings thresholds;
they never raise and return None / ProgressStatus.NONE when no target exists.
"""

from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Iterable, Mapping, Optional, Sequence

from dealer_kpi.core.config import Settings, get_settings
from dealer_kpi.models.enums import KpiSortMode, ProgressStatus, TrendDirection
from dealer_kpi.models.kpi import ComputedValue, Kpi
from dealer_kpi.models.overview import Trend
from dealer_kpi.utils.text import normalize

ComputedByBrand = Mapping[str, Mapping[str, ComputedValue]]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def progress_percent(cumulative: float, target: Optional[float]) -> Optional[int]:
    """Month-to-date progress as a whole, non-negative percentage of target."""
    if target is None or target <= 0:
        return None
    percent = cumulative / target * 100
    if not math.isfinite(percent):
        return None
    return max(0, _round_half_up(percent))


def progress_status(progress: Optional[float], settings: Optional[Settings] = None) -> ProgressStatus:
    settings = settings or get_settings()
    if progress is None:
        return ProgressStatus.NONE
    if progress >= settings.KPI_STATUS_ACHIEVED_THRESHOLD:
        return ProgressStatus.ACHIEVED
    if progress >= settings.KPI_STATUS_NEAR_THRESHOLD:
        return ProgressStatus.NEAR
    return ProgressStatus.BELOW


def remaining_to_target(cumulative: float, target: Optional[float]) -> Optional[float]:
    if target is None:
        return None
    return max(0.0, target - cumulative)


def trend(current: float, previous: Optional[float], settings: Optional[Settings] = None) -> Trend:
    """Compare a reading with the previous one."""
    settings = settings or get_settings()
    if previous is None or previous == 0:
        return Trend()
    change = (current - previous) / previous * 100
    if not math.isfinite(change):
        return Trend()
    if abs(change) < settings.KPI_TREND_FLAT_THRESHOLD:
        direction = TrendDirection.FLAT
    elif change > 0:
        direction = TrendDirection.UP
    else:
        direction = TrendDirection.DOWN
    return Trend(direction=direction, change_percent=change)


def average_progress(kpi_id: str, computed_by_brand: ComputedByBrand) -> Optional[float]:
    """Mean progress over the brands that have a positive target for the KPI."""
    progresses = []
    for computed in computed_by_brand.values():
        value = computed.get(kpi_id)
        if value is None:
            continue
        progress = progress_percent(value.cumulative, value.target_value)
        if progress is not None:
            progresses.append(progress)
    if not progresses:
        return None
    return sum(progresses) / len(progresses)


def order_kpis(
    kpis: Iterable[Kpi],
    computed_by_brand: ComputedByBrand,
    mode: KpiSortMode = KpiSortMode.NAME,
    ordered_ids: Optional[Sequence[str]] = None,
) -> list[Kpi]:
    """
    Order KPI rows for display.

    A non-empty ordered_ids list wins: listed KPIs first in that order, the
    rest afterwards in input order. Otherwise sort by name or by average
    progress, with KPIs lacking progress last.
    """
    kpi_list = list(kpis)

    if ordered_ids:
        by_id = {kpi.id: kpi for kpi in kpi_list}
        listed = [str(kpi_id) for kpi_id in ordered_ids]
        result = [by_id[kpi_id] for kpi_id in dict.fromkeys(listed) if kpi_id in by_id]
        listed_ids = set(listed)
        result.extend(kpi for kpi in kpi_list if kpi.id not in listed_ids)
        return result

    if mode == KpiSortMode.NAME:
        return sorted(kpi_list, key=lambda kpi: normalize(kpi.name))

    averages = {kpi.id: average_progress(kpi.id, computed_by_brand) for kpi in kpi_list}

    def compare(a: Kpi, b: Kpi) -> int:
        ap, bp = averages[a.id], averages[b.id]
        if ap is None and bp is None:
            na, nb = normalize(a.name), normalize(b.name)
            return (na > nb) - (na < nb)
        if ap is None:
            return 1
        if bp is None:
            return -1
        diff = bp - ap if mode == KpiSortMode.AVG_PROGRESS_DESC else ap - bp
        return (diff > 0) - (diff < 0)

    return sorted(kpi_list, key=cmp_to_key(compare))

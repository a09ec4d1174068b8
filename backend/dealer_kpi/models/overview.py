"""
Multi-brand overview models.

These wrap ComputedValue with the progress derivations the dashboard table
shows next to each brand's numbers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dealer_kpi.models.enums import KpiSortMode, ProgressStatus, TrendDirection
from dealer_kpi.models.kpi import ComputedValue, Kpi


class Trend(BaseModel):
    """Change between a current and a previous reading."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    direction: TrendDirection = TrendDirection.NONE
    change_percent: Optional[float] = Field(None, description="Signed change in percent")


class KpiCell(ComputedValue):
    """Computed value for one KPI in one brand, with progress against target."""

    progress_percent: Optional[int] = Field(None, description="Rounded, never negative")
    status: ProgressStatus = ProgressStatus.NONE
    remaining_to_target: Optional[float] = None
    trend: Trend = Field(default_factory=Trend, description="Daily value against the previous day")


class KpiOverviewRow(BaseModel):
    """One KPI across all brands."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kpi: Kpi
    average_progress: Optional[float] = None
    cells: dict[str, KpiCell] = Field(default_factory=dict, description="Keyed by brand id")


class KpiOverview(BaseModel):
    """Ordered KPI rows for a set of brands on one day."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day: int
    sort_mode: KpiSortMode = KpiSortMode.NAME
    rows: list[KpiOverviewRow] = Field(default_factory=list)

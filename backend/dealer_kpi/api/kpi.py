"""
KPI computation endpoints.

Thin adapters over the engine: callers post the assembled BrandData (or one
per brand) and get computed values back. Nothing is stored.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dealer_kpi.api.deps import AppSettings
from dealer_kpi.core.exceptions import FormulaValidationError
from dealer_kpi.models.enums import KpiSortMode
from dealer_kpi.models.kpi import BrandData, ComputedValue, EvaluationMode
from dealer_kpi.models.overview import KpiOverview
from dealer_kpi.services.formula_validator import validate_formula
from dealer_kpi.services.kpi_calculator import compute_brand_values
from dealer_kpi.services.kpi_overview import compute_overview

router = APIRouter()


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ComputeRequest(_Request):
    brand_data: BrandData
    day: int = Field(..., ge=1, le=31, description="Day of month")
    mode: Optional[EvaluationMode] = Field(None, description="Overrides KPI_EVALUATION_MODE")


class OverviewRequest(_Request):
    brands: dict[str, BrandData] = Field(..., description="BrandData keyed by brand id")
    day: int = Field(..., ge=1, le=31, description="Day of month")
    sort_mode: KpiSortMode = KpiSortMode.NAME
    ordered_kpi_ids: list[str] = Field(default_factory=list, description="Manual row order")
    mode: Optional[EvaluationMode] = None


class FormulaValidateRequest(_Request):
    kpi_id: str = Field(..., min_length=1)
    expression: str
    brand_data: BrandData


class FormulaValidateResponse(_Request):
    valid: bool = True
    references: list[str] = Field(default_factory=list, description="Resolved KPI ids")


@router.post("/compute", response_model=dict[str, ComputedValue])
async def compute(payload: ComputeRequest, settings: AppSettings) -> dict[str, ComputedValue]:
    """Compute daily, month-to-date and target values for one brand."""
    return compute_brand_values(
        payload.brand_data,
        payload.day,
        payload.mode or settings.KPI_EVALUATION_MODE,
    )


@router.post("/overview", response_model=KpiOverview)
async def overview(payload: OverviewRequest, settings: AppSettings) -> KpiOverview:
    """Compute all brands and return ordered KPI rows with progress."""
    return compute_overview(
        payload.brands,
        payload.day,
        sort_mode=payload.sort_mode,
        ordered_ids=payload.ordered_kpi_ids,
        mode=payload.mode,
        settings=settings,
    )


@router.post("/formula/validate", response_model=FormulaValidateResponse)
async def validate(payload: FormulaValidateRequest) -> FormulaValidateResponse:
    """Check a formula before it is saved."""
    try:
        references = validate_formula(payload.kpi_id, payload.expression, payload.brand_data)
    except FormulaValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail=exc.message,
        ) from exc
    return FormulaValidateResponse(valid=True, references=references)

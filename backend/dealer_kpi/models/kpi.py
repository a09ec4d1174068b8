"""
KPI engine input and output models.

BrandData is assembled by the data loader for one brand/category/month and is
the only input the engine reads. The JSON shape uses the dashboard's camelCase
keys; Python code uses the snake_case field names.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dealer_kpi.models.enums import CalculationType

EvaluationMode = Literal["legacy", "recursive"]


def _id_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Kpi(_CamelModel):
    """Single KPI definition within a category."""

    id: str = Field(..., min_length=1, description="Stable KPI id")
    name: str = Field("", description="Display name, also used for formula references")
    category: Optional[str] = Field(None, description="KPI category")
    unit: Optional[str] = Field(None, description="Free-text unit label")
    calculation_type: CalculationType = Field(
        CalculationType.DIRECT, description="Derivation strategy"
    )
    static_target: Optional[float] = Field(
        None, description="Fallback target for target-type KPIs"
    )
    only_cumulative: bool = Field(
        False, description="Month value comes from a single stored override"
    )
    numerator_kpi_id: Optional[str] = Field(None, description="Percentage numerator KPI")
    denominator_kpi_id: Optional[str] = Field(None, description="Percentage denominator KPI")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("numerator_kpi_id", "denominator_kpi_id", mode="before")
    @classmethod
    def _coerce_ref_id(cls, value: Any) -> Optional[str]:
        return _id_or_none(value)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("calculation_type", mode="before")
    @classmethod
    def _default_calculation_type(cls, value: Any) -> Any:
        if isinstance(value, CalculationType):
            return value
        known = {member.value for member in CalculationType}
        text = str(value).strip().lower() if value is not None else ""
        return text if text in known else CalculationType.DIRECT

    @field_validator("only_cumulative", mode="before")
    @classmethod
    def _coerce_only_cumulative(cls, value: Any) -> Any:
        return False if value is None else value


class BrandData(_CamelModel):
    """Everything the engine needs for one brand, category and month."""

    kpis: list[Kpi] = Field(default_factory=list)
    # kpi id -> day of month -> entered value; a missing day means "no data"
    values: dict[str, dict[int, Optional[float]]] = Field(default_factory=dict)
    cumulative_overrides: dict[str, Optional[float]] = Field(default_factory=dict)
    monthly_targets: dict[str, Optional[float]] = Field(default_factory=dict)
    cumulative_sources: dict[str, list[str]] = Field(default_factory=dict)
    formula_expressions: dict[str, str] = Field(default_factory=dict)
    unit_by_kpi_id: dict[str, str] = Field(default_factory=dict)

    @field_validator(
        "values",
        "cumulative_overrides",
        "monthly_targets",
        "formula_expressions",
        "unit_by_kpi_id",
        mode="before",
    )
    @classmethod
    def _stringify_keys(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): item for key, item in value.items()}
        return value

    @field_validator("cumulative_sources", mode="before")
    @classmethod
    def _normalize_sources(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        normalized: dict[str, list[str]] = {}
        for key, sources in value.items():
            ids = [_id_or_none(source) for source in (sources or [])]
            normalized[str(key)] = [source_id for source_id in ids if source_id]
        return normalized

    def raw_value(self, kpi_id: str, day: int) -> Optional[float]:
        """Entered value for a KPI/day, None when nothing was entered."""
        return self.values.get(kpi_id, {}).get(day)

    def unit_for(self, kpi: Kpi) -> Optional[str]:
        """Resolved unit: the per-brand unit wins over the KPI's own."""
        return self.unit_by_kpi_id.get(kpi.id) or kpi.unit


class UnitMeta(BaseModel):
    """Presentation semantics derived from a unit string."""

    model_config = ConfigDict(frozen=True)

    is_percent: bool = False
    is_tl: bool = False
    label: Optional[str] = None


class ComputedValue(_CamelModel):
    """Engine output for one KPI on the selected day."""

    daily: Optional[float] = None
    cumulative: float = 0.0
    target_value: Optional[float] = None
    unit: Optional[str] = None
    is_percent: bool = False
    is_tl: bool = False
    calculation_type: CalculationType = CalculationType.DIRECT
    only_cumulative: bool = False

"""
Shared fixtures for KPI engine tests.
"""

import pytest

from dealer_kpi.core.config import Settings, get_settings
from dealer_kpi.models.kpi import BrandData, Kpi


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate tests from a developer's .env and cached settings."""
    monkeypatch.delenv("KPI_EVALUATION_MODE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def sales_brand() -> BrandData:
    """
    A small sales category for one brand.

    new_sales / used_sales: entered daily
    total_sales: cumulative of new + used
    conversion: percentage of sales over showroom visits
    sales_per_visit: formula over names and ids
    quarterly_goal: target formula over month-to-date values
    stock: only-cumulative with a monthly override
    """
    return BrandData(
        kpis=[
            Kpi(id="new_sales", name="New Sales", unit="Adet"),
            Kpi(id="used_sales", name="Used Sales", unit="Adet"),
            Kpi(id="visits", name="Showroom Visits", unit="Adet"),
            Kpi(id="total_sales", name="Total Sales", unit="Adet", calculation_type="cumulative"),
            Kpi(
                id="conversion",
                name="Conversion",
                unit="%",
                calculation_type="percentage",
                numerator_kpi_id="new_sales",
                denominator_kpi_id="visits",
            ),
            Kpi(id="sales_per_visit", name="Sales per Visit", calculation_type="formula"),
            Kpi(
                id="quarterly_goal",
                name="Goal Tracker",
                calculation_type="target",
                static_target=50,
            ),
            Kpi(id="stock", name="Stock", unit="Adet", only_cumulative=True),
            Kpi(id="revenue", name="Revenue", unit="TL"),
        ],
        values={
            "new_sales": {1: 2, 2: 3, 3: 5},
            "used_sales": {1: 1, 3: 4},
            "visits": {1: 10, 2: 0, 3: 20},
            "revenue": {2: 150000},
        },
        cumulative_overrides={"stock": 42},
        monthly_targets={"new_sales": 40, "total_sales": 60},
        cumulative_sources={"total_sales": ["new_sales", "used_sales"]},
        formula_expressions={
            "sales_per_visit": "([New Sales] + {{used_sales}}) / {{visits}}",
            "quarterly_goal": "{{total_sales}} * 2",
        },
    )

"""
Unit tests for the multi-brand overview.
"""

import pytest

from dealer_kpi.models.enums import KpiSortMode, ProgressStatus, TrendDirection
from dealer_kpi.models.kpi import BrandData, ComputedValue, Kpi
from dealer_kpi.services.kpi_overview import build_cell, compute_overview


def _brand(kpis, values, targets) -> BrandData:
    return BrandData(kpis=kpis, values=values, monthly_targets=targets)


class TestBuildCell:
    """Tests for attaching progress to a computed value."""

    def test_cell_with_target(self, settings):
        cell = build_cell(ComputedValue(daily=4, cumulative=45, target_value=50), settings)
        assert cell.progress_percent == 90
        assert cell.status == ProgressStatus.NEAR
        assert cell.remaining_to_target == 5
        assert cell.daily == 4

    def test_cell_without_target(self, settings):
        cell = build_cell(ComputedValue(cumulative=45), settings)
        assert cell.progress_percent is None
        assert cell.status == ProgressStatus.NONE
        assert cell.remaining_to_target is None

    def test_cell_trend_against_previous_day(self, settings):
        cell = build_cell(
            ComputedValue(daily=12, cumulative=22),
            settings,
            previous=ComputedValue(daily=10, cumulative=10),
        )
        assert cell.trend.direction == TrendDirection.UP
        assert cell.trend.change_percent == pytest.approx(20)

    def test_cell_without_daily_value_has_no_trend(self, settings):
        cell = build_cell(
            ComputedValue(daily=None, cumulative=5),
            settings,
            previous=ComputedValue(daily=3, cumulative=5),
        )
        assert cell.trend.direction == TrendDirection.NONE


class TestComputeOverview:
    """Tests for compute_overview."""

    def test_rows_cover_union_of_kpis(self, settings):
        sales = Kpi(id="sales", name="Sales")
        service = Kpi(id="service", name="Service Visits")
        brands = {
            "b1": _brand([sales, service], {"sales": {1: 10}, "service": {1: 5}}, {"sales": 20}),
            "b2": _brand([sales], {"sales": {1: 30}}, {"sales": 20}),
        }

        overview = compute_overview(brands, 1, settings=settings, mode="legacy")

        assert [row.kpi.id for row in overview.rows] == ["sales", "service"]
        sales_row, service_row = overview.rows
        assert set(sales_row.cells) == {"b1", "b2"}
        assert sales_row.cells["b1"].progress_percent == 50
        assert sales_row.cells["b2"].status == ProgressStatus.ACHIEVED
        assert sales_row.average_progress == 100
        assert set(service_row.cells) == {"b1"}
        assert service_row.average_progress is None

    def test_sorted_by_average_progress(self, settings):
        a = Kpi(id="a", name="A")
        b = Kpi(id="b", name="B")
        brands = {"b1": _brand([a, b], {"a": {1: 1}, "b": {1: 9}}, {"a": 10, "b": 10})}

        overview = compute_overview(
            brands, 1, sort_mode=KpiSortMode.AVG_PROGRESS_DESC, settings=settings
        )

        assert [row.kpi.id for row in overview.rows] == ["b", "a"]
        assert overview.sort_mode == KpiSortMode.AVG_PROGRESS_DESC

    def test_manual_order(self, settings):
        a = Kpi(id="a", name="A")
        b = Kpi(id="b", name="B")
        brands = {"b1": _brand([a, b], {}, {})}
        overview = compute_overview(brands, 1, ordered_ids=["b"], settings=settings)
        assert [row.kpi.id for row in overview.rows] == ["b", "a"]

    def test_no_brands(self, settings):
        overview = compute_overview({}, 3, settings=settings)
        assert overview.rows == []
        assert overview.day == 3

    def test_cells_carry_previous_day_trend(self, settings, sales_brand):
        overview = compute_overview({"b1": sales_brand}, 3, settings=settings)
        cells = {row.kpi.id: row.cells["b1"] for row in overview.rows}
        # new_sales went from 3 to 5
        assert cells["new_sales"].trend.direction == TrendDirection.UP
        assert cells["new_sales"].trend.change_percent == pytest.approx(200 / 3)
        # visits were 0 on day 2, nothing to compare against
        assert cells["visits"].trend.direction == TrendDirection.NONE
        assert cells["stock"].trend.direction == TrendDirection.NONE

    def test_first_day_has_no_trend(self, settings, sales_brand):
        overview = compute_overview({"b1": sales_brand}, 1, settings=settings)
        assert all(
            row.cells["b1"].trend.direction == TrendDirection.NONE for row in overview.rows
        )

    def test_non_finite_targets_do_not_break_overview(self, settings):
        brand = BrandData.model_validate(
            {
                "kpis": [
                    {"id": "a", "name": "A"},
                    {"id": "t", "name": "T", "calculationType": "target", "staticTarget": "Infinity"},
                ],
                "values": {"a": {"1": 5}},
                "monthlyTargets": {"a": "NaN"},
            }
        )
        overview = compute_overview({"b1": brand}, 1, settings=settings)
        for row in overview.rows:
            cell = row.cells["b1"]
            assert cell.target_value is None
            assert cell.progress_percent is None
            assert cell.status == ProgressStatus.NONE
            assert row.average_progress is None

    def test_tiny_target_against_large_value(self, settings):
        brand = BrandData(
            kpis=[Kpi(id="a", name="A")],
            values={"a": {1: 1e10}},
            monthly_targets={"a": 1e-308},
        )
        overview = compute_overview({"b1": brand}, 1, settings=settings)
        cell = overview.rows[0].cells["b1"]
        assert cell.target_value == 1e-308
        assert cell.progress_percent is None
        assert cell.remaining_to_target == 0

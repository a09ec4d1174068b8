"""
Unit tests for referenced-KPI value lookup (legacy and recursive).
"""

import logging

from dealer_kpi.models.kpi import BrandData, Kpi
from dealer_kpi.services.value_resolver import RecursiveValueResolver, ValueResolver


def make_brand(**overrides) -> BrandData:
    data = dict(
        kpis=[
            Kpi(id="a", name="A"),
            Kpi(id="b", name="B"),
            Kpi(id="sum", name="Sum", calculation_type="cumulative"),
            Kpi(id="f", name="F", calculation_type="formula"),
            Kpi(id="t", name="T", calculation_type="target"),
            Kpi(
                id="p",
                name="P",
                unit="%",
                calculation_type="percentage",
                numerator_kpi_id="a",
                denominator_kpi_id="b",
            ),
            Kpi(id="oc", name="OC", only_cumulative=True),
        ],
        values={"a": {1: 1, 2: 2, 3: 3}, "b": {1: 4, 3: 6}, "oc": {2: 9}},
        cumulative_overrides={"oc": 100},
        cumulative_sources={"sum": ["a", "b"]},
        formula_expressions={"f": "{{a}}*10", "t": "{{a}}+{{b}}"},
    )
    data.update(overrides)
    return BrandData(**data)


class TestValueResolver:
    """Legacy lookup: raw entries and cumulative sources only."""

    def test_day_value_raw_entry(self):
        resolver = ValueResolver(make_brand())
        assert resolver.day_value("a", 2) == 2

    def test_day_value_cumulative_sources(self):
        resolver = ValueResolver(make_brand())
        assert resolver.day_value("sum", 1) == 5
        assert resolver.day_value("sum", 2) == 2

    def test_day_value_does_not_evaluate_formulas(self):
        resolver = ValueResolver(make_brand())
        assert resolver.day_value("f", 1) == 0
        assert resolver.day_value("p", 1) == 0
        assert resolver.day_value("t", 1) == 0

    def test_day_value_raw_entry_wins_over_strategy(self):
        brand = make_brand(values={"f": {1: 7}, "sum": {1: 11}})
        resolver = ValueResolver(brand)
        assert resolver.day_value("f", 1) == 7
        assert resolver.day_value("sum", 1) == 11

    def test_day_value_only_cumulative_without_entry(self):
        resolver = ValueResolver(make_brand())
        assert resolver.day_value("oc", 1) == 0
        assert resolver.day_value("oc", 2) == 9

    def test_unknown_kpi(self):
        resolver = ValueResolver(make_brand())
        assert resolver.day_value("missing", 1) == 0
        assert resolver.cumulative_value("missing", 3) == 0

    def test_cumulative_value_direct(self):
        resolver = ValueResolver(make_brand())
        assert resolver.cumulative_value("a", 2) == 3
        assert resolver.cumulative_value("b", 3) == 10

    def test_cumulative_value_sources(self):
        resolver = ValueResolver(make_brand())
        assert resolver.cumulative_value("sum", 3) == 16

    def test_cumulative_value_override(self):
        resolver = ValueResolver(make_brand())
        assert resolver.cumulative_value("oc", 1) == 100
        assert resolver.cumulative_value("oc", 31) == 100

    def test_cumulative_value_formula_sums_own_entries_only(self):
        resolver = ValueResolver(make_brand(values={"a": {1: 1}, "f": {1: 5, 2: 6}}))
        assert resolver.cumulative_value("f", 2) == 11


class TestRecursiveValueResolver:
    """Recursive lookup evaluates referenced strategies."""

    def test_formula_reference(self):
        resolver = RecursiveValueResolver(make_brand())
        assert resolver.day_value("f", 2) == 20
        assert resolver.cumulative_value("f", 3) == 60

    def test_percentage_reference(self):
        resolver = RecursiveValueResolver(make_brand())
        assert resolver.day_value("p", 1) == 25
        assert resolver.day_value("p", 2) == 0  # b has no entry on day 2
        assert resolver.cumulative_value("p", 3) == 60

    def test_target_reference(self):
        resolver = RecursiveValueResolver(make_brand())
        assert resolver.day_value("t", 3) == 0
        assert resolver.cumulative_value("t", 3) == 16

    def test_self_reference_counts_as_zero(self, caplog):
        brand = make_brand(formula_expressions={"f": "{{f}}+1"})
        resolver = RecursiveValueResolver(brand)
        with caplog.at_level(logging.WARNING, logger="dealer_kpi"):
            assert resolver.day_value("f", 1) == 1
        assert "Circular KPI reference" in caplog.text

    def test_mutual_reference_terminates(self):
        brand = make_brand(
            kpis=[
                Kpi(id="x", name="X", calculation_type="formula"),
                Kpi(id="y", name="Y", calculation_type="formula"),
            ],
            values={},
            formula_expressions={"x": "{{y}}+1", "y": "{{x}}+1"},
        )
        resolver = RecursiveValueResolver(brand)
        assert resolver.day_value("x", 1) == 2
        assert resolver.cumulative_value("y", 2) > 0

    def test_cycle_values_do_not_depend_on_lookup_order(self):
        brand = make_brand(
            kpis=[
                Kpi(id="x", name="X", calculation_type="formula"),
                Kpi(id="y", name="Y", calculation_type="formula"),
            ],
            values={},
            formula_expressions={"x": "{{y}}+1", "y": "{{x}}+1"},
        )
        resolver = RecursiveValueResolver(brand)
        assert resolver.day_value("x", 1) == 2
        # y was computed on the way with x cut to 0; that value is not reused
        assert resolver.day_value("y", 1) == 2
        assert resolver.day_value("x", 1) == 2

    def test_acyclic_values_are_memoized(self):
        resolver = RecursiveValueResolver(make_brand())
        assert resolver.day_value("f", 2) == 20
        assert ("day", "f", 2) in resolver._memo

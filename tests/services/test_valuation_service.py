"""
Tests for ValuationService: item valuation and catalog valuation with ABC
tiers, filters and summary.
"""

from decimal import Decimal

import pytest

from stock_engines.valuation import CostMethod
from stock_kernel.domain.classification import AbcClass
from stock_kernel.domain.findings import FindingCode
from stock_kernel.exceptions import UnknownCostMethodError
from stock_services import ValuationFilters, ValuationService

from tests.conftest import seed_item_x


class TestValuate:

    def test_item_x_weighted_average(self, store, session, clock):
        seed_item_x(store)

        record = ValuationService(session, clock).valuate("X")

        assert record.quantity == Decimal("120")
        assert record.unit_cost == Decimal("10")
        assert record.total_value == Decimal("1200")
        assert record.method is CostMethod.WEIGHTED_AVG

    @pytest.mark.parametrize("method", ["fifo", "lifo", CostMethod.WEIGHTED_AVG])
    def test_item_x_any_method(self, store, session, clock, method):
        seed_item_x(store)

        record = ValuationService(session, clock).valuate("X", method=method)

        assert record.total_value == Decimal("1200")

    def test_explicit_quantity(self, store, session, clock):
        seed_item_x(store)

        record = ValuationService(session, clock).valuate("X", quantity=Decimal("7"))

        assert record.total_value == Decimal("70")

    def test_unknown_method(self, store, session, clock):
        seed_item_x(store)

        with pytest.raises(UnknownCostMethodError):
            ValuationService(session, clock).valuate("X", method="standard")


class TestValuateCatalog:

    def test_values_and_tiers(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog()

        values = {r.item_code: r.total_value for r in result.records}
        assert values == {
            "V": Decimal("300"),
            "W": Decimal("0"),
            "X": Decimal("1200"),
            "Y": Decimal("1500"),
            "Z": Decimal("0"),
        }
        assert result.abc_classes == {
            "Y": AbcClass.A,
            "X": AbcClass.A,
            "V": AbcClass.B,
            "W": AbcClass.C,
            "Z": AbcClass.C,
        }
        assert result.failures == ()

    def test_summary(self, catalog, clock):
        summary = ValuationService(catalog, clock).valuate_catalog().summary

        assert summary.total_value == Decimal("3000")
        assert summary.total_items == 5
        assert summary.average_value == Decimal("600")
        assert (summary.a_count, summary.b_count, summary.c_count) == (2, 1, 2)
        assert summary.missing_cost_basis_count == 2

    def test_missing_cost_findings(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog()

        flagged = {f.item_code for f in result.findings if f.code is FindingCode.MISSING_COST_BASIS}
        assert flagged == {"W", "Z"}

    def test_filter_by_class_keeps_catalog_tiers(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog(
            filters=ValuationFilters(abc_class=AbcClass.B),
        )

        assert [r.item_code for r in result.records] == ["V"]
        assert result.abc_classes["Y"] is AbcClass.A
        assert result.summary.total_value == Decimal("300")

    def test_filter_by_category(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog(
            filters=ValuationFilters(category="spares"),
        )

        assert [r.item_code for r in result.records] == ["X", "Y"]
        assert result.categories["V"] == "consumables"

    def test_filter_by_value_range(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog(
            filters=ValuationFilters(min_value=Decimal("300"), max_value=Decimal("1200")),
        )

        assert [r.item_code for r in result.records] == ["V", "X"]

    def test_exclude_zero_stock(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog(
            filters=ValuationFilters(include_zero_stock=False),
        )

        assert "W" not in {r.item_code for r in result.records}
        assert "Z" in {r.item_code for r in result.records}

    def test_fifo_catalog(self, catalog, clock):
        result = ValuationService(catalog, clock).valuate_catalog(method="fifo")

        assert result.method is CostMethod.FIFO
        assert result.summary.total_value == Decimal("3000")

    def test_empty_catalog(self, session, clock):
        result = ValuationService(session, clock).valuate_catalog()

        assert result.records == ()
        assert result.summary.total_value == Decimal("0")
        assert result.summary.average_value == Decimal("0")

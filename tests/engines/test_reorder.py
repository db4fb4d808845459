"""
Tests for the reorder evaluator.

Covers:
- Trigger condition
- Urgency ladder
- Stockout projection
- Suggested quantity bounds
- Rule validation
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stock_engines.reorder import ReorderEvaluator, validate_rule
from stock_kernel.domain.reorder import ReorderRule, ReorderUrgency
from stock_kernel.exceptions import InvalidReorderRuleError

AS_OF = date(2024, 2, 20)


def _rule(**overrides):
    values = dict(
        item_code="X",
        reorder_level=Decimal("50"),
        reorder_quantity=Decimal("100"),
        lead_time_days=7,
        safety_stock=Decimal("10"),
    )
    values.update(overrides)
    return ReorderRule(**values)


class TestTrigger:

    def setup_method(self):
        self.evaluator = ReorderEvaluator()

    def test_above_level_no_decision(self):
        decision = self.evaluator.evaluate(
            _rule(), current_stock=Decimal("51"), avg_daily_consumption=Decimal("1"), as_of_date=AS_OF,
        )

        assert decision is None

    def test_at_level_triggers(self):
        decision = self.evaluator.evaluate(
            _rule(), current_stock=Decimal("50"), avg_daily_consumption=Decimal("1"), as_of_date=AS_OF,
        )

        assert decision is not None
        assert decision.reorder_level == Decimal("50")
        assert "at or below reorder level" in decision.reason

    @settings(max_examples=200)
    @given(
        stock=st.decimals(min_value=Decimal("-50"), max_value=Decimal("500"), places=2),
        level=st.decimals(min_value=Decimal("0"), max_value=Decimal("500"), places=2),
        consumption=st.decimals(min_value=Decimal("0"), max_value=Decimal("50"), places=2),
    )
    def test_triggers_iff_at_or_below_level(self, stock, level, consumption):
        decision = ReorderEvaluator().evaluate(
            _rule(reorder_level=level),
            current_stock=stock,
            avg_daily_consumption=consumption,
            as_of_date=AS_OF,
        )

        assert (decision is not None) == (stock <= level)
        if decision is not None:
            assert decision.suggested_quantity >= Decimal("1")


class TestUrgency:

    def setup_method(self):
        self.evaluator = ReorderEvaluator()

    @pytest.mark.parametrize(
        "stock, consumption, expected",
        [
            ("0", "0", ReorderUrgency.CRITICAL),
            ("-3", "2", ReorderUrgency.CRITICAL),
            ("20", "5", ReorderUrgency.CRITICAL),     # 4 days <= 7 day lead time
            ("50", "5", ReorderUrgency.HIGH),         # 10 days <= 2 x lead time
            ("20", "0", ReorderUrgency.MEDIUM),       # <= half the reorder level
            ("8", "0", ReorderUrgency.MEDIUM),        # <= safety stock
            ("50", "1", ReorderUrgency.LOW),
        ],
    )
    def test_ladder(self, stock, consumption, expected):
        decision = self.evaluator.evaluate(
            _rule(),
            current_stock=Decimal(stock),
            avg_daily_consumption=Decimal(consumption),
            as_of_date=AS_OF,
        )

        assert decision.urgency is expected


class TestStockout:

    def setup_method(self):
        self.evaluator = ReorderEvaluator()

    def test_out_of_stock_is_today(self):
        decision = self.evaluator.evaluate(
            _rule(), current_stock=Decimal("0"), avg_daily_consumption=Decimal("0"), as_of_date=AS_OF,
        )

        assert decision.days_to_stockout == Decimal("0")
        assert decision.estimated_stockout_date == AS_OF
        assert decision.reason.startswith("Out of stock")

    def test_partial_days_round_down(self):
        decision = self.evaluator.evaluate(
            _rule(), current_stock=Decimal("10"), avg_daily_consumption=Decimal("3"), as_of_date=AS_OF,
        )

        assert decision.estimated_stockout_date == AS_OF + timedelta(days=3)

    def test_no_consumption_no_projection(self):
        decision = self.evaluator.evaluate(
            _rule(), current_stock=Decimal("30"), avg_daily_consumption=Decimal("0"), as_of_date=AS_OF,
        )

        assert decision.days_to_stockout is None
        assert decision.estimated_stockout_date is None


class TestSuggestedQuantity:

    def test_reorder_quantity_by_default(self):
        assert ReorderEvaluator.suggested_quantity(_rule(), Decimal("40")) == Decimal("100")

    def test_capped_by_maximum_stock(self):
        rule = _rule(maximum_stock=Decimal("120"))

        assert ReorderEvaluator.suggested_quantity(rule, Decimal("50")) == Decimal("70")

    def test_minimum_order_quantity_wins_over_cap(self):
        rule = _rule(maximum_stock=Decimal("120"), minimum_order_quantity=Decimal("80"))

        assert ReorderEvaluator.suggested_quantity(rule, Decimal("50")) == Decimal("80")

    def test_negative_stock_treated_as_empty_for_headroom(self):
        rule = _rule(maximum_stock=Decimal("120"))

        assert ReorderEvaluator.suggested_quantity(rule, Decimal("-5")) == Decimal("100")


class TestValidateRule:

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"item_code": " "}, "item_code"),
            ({"reorder_level": Decimal("-1")}, "reorder_level"),
            ({"reorder_quantity": Decimal("0")}, "reorder_quantity"),
            ({"safety_stock": Decimal("-1")}, "safety_stock"),
            ({"lead_time_days": -1}, "lead_time_days"),
            ({"minimum_order_quantity": Decimal("0")}, "minimum_order_quantity"),
            ({"maximum_stock": Decimal("49")}, "maximum_stock"),
        ],
    )
    def test_invalid_rule(self, overrides, field):
        with pytest.raises(InvalidReorderRuleError) as exc_info:
            validate_rule(_rule(**overrides))

        assert exc_info.value.field == field

    def test_valid_rule(self):
        validate_rule(_rule(maximum_stock=Decimal("50")))

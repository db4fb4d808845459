"""
Module: stock_engines.reorder
Responsibility:
    Decide whether an item needs replenishing under a reorder rule, how
    urgently, and how much to order.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ReorderService persists
    the resulting decision as a PENDING suggestion.

Invariants enforced:
    - A decision is returned if and only if current_stock <= reorder_level.
    - days_to_stockout is None without consumption and 0 when stock is
      already exhausted; it is never computed by dividing by zero.
    - suggested_quantity >= minimum_order_quantity > 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_FLOOR, Decimal

from stock_config.schema import EngineConfig
from stock_engines.tracer import traced_engine
from stock_kernel.domain.reorder import ReorderRule, ReorderUrgency
from stock_kernel.exceptions import InvalidReorderRuleError
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.reorder")

ZERO = Decimal("0")


@dataclass(frozen=True)
class ReorderDecision:
    item_code: str
    current_stock: Decimal
    reorder_level: Decimal
    suggested_quantity: Decimal
    urgency: ReorderUrgency
    days_to_stockout: Decimal | None
    estimated_stockout_date: date | None
    avg_daily_consumption: Decimal
    reason: str


def validate_rule(rule: ReorderRule) -> None:
    """Raise InvalidReorderRuleError for a rule the engine cannot apply."""
    code = rule.item_code
    if not code or not code.strip():
        raise InvalidReorderRuleError(code, "item_code", code, "item code is required")
    if rule.reorder_level < 0:
        raise InvalidReorderRuleError(code, "reorder_level", rule.reorder_level, "cannot be negative")
    if rule.reorder_quantity <= 0:
        raise InvalidReorderRuleError(code, "reorder_quantity", rule.reorder_quantity, "must be positive")
    if rule.safety_stock < 0:
        raise InvalidReorderRuleError(code, "safety_stock", rule.safety_stock, "cannot be negative")
    if rule.lead_time_days < 0:
        raise InvalidReorderRuleError(code, "lead_time_days", rule.lead_time_days, "cannot be negative")
    if rule.minimum_order_quantity <= 0:
        raise InvalidReorderRuleError(
            code, "minimum_order_quantity", rule.minimum_order_quantity, "must be positive",
        )
    if rule.maximum_stock is not None and rule.maximum_stock < rule.reorder_level:
        raise InvalidReorderRuleError(
            code, "maximum_stock", rule.maximum_stock, "cannot be below reorder_level",
        )


class ReorderEvaluator:
    """Pure reorder trigger, urgency and quantity calculation."""

    def __init__(self, config: EngineConfig | None = None):
        self._config = config or EngineConfig()

    @staticmethod
    def days_to_stockout(current_stock: Decimal, avg_daily_consumption: Decimal) -> Decimal | None:
        if current_stock <= 0:
            return ZERO
        if avg_daily_consumption <= 0:
            return None
        return current_stock / avg_daily_consumption

    def urgency(
        self,
        rule: ReorderRule,
        current_stock: Decimal,
        days_to_stockout: Decimal | None,
    ) -> ReorderUrgency:
        cfg = self._config
        lead = Decimal(rule.lead_time_days)
        if current_stock <= 0:
            return ReorderUrgency.CRITICAL
        if days_to_stockout is not None:
            if days_to_stockout <= lead:
                return ReorderUrgency.CRITICAL
            if days_to_stockout <= lead * cfg.high_urgency_lead_multiplier:
                return ReorderUrgency.HIGH
        if (
            current_stock <= rule.safety_stock
            or current_stock <= rule.reorder_level * cfg.medium_urgency_level_ratio
        ):
            return ReorderUrgency.MEDIUM
        return ReorderUrgency.LOW

    @staticmethod
    def suggested_quantity(rule: ReorderRule, current_stock: Decimal) -> Decimal:
        quantity = max(rule.reorder_quantity, rule.minimum_order_quantity)
        if rule.maximum_stock is not None:
            headroom = rule.maximum_stock - max(current_stock, ZERO)
            quantity = min(quantity, headroom)
        return max(quantity, rule.minimum_order_quantity)

    @traced_engine("reorder", "1.0", fingerprint_fields=("current_stock", "avg_daily_consumption", "as_of_date"))
    def evaluate(
        self,
        rule: ReorderRule,
        current_stock: Decimal,
        avg_daily_consumption: Decimal,
        as_of_date: date,
    ) -> ReorderDecision | None:
        validate_rule(rule)
        if current_stock > rule.reorder_level:
            return None

        days = self.days_to_stockout(current_stock, avg_daily_consumption)
        urgency = self.urgency(rule, current_stock, days)
        stockout_date = None
        if days is not None:
            whole_days = int(days.to_integral_value(rounding=ROUND_FLOOR))
            stockout_date = as_of_date + timedelta(days=whole_days)

        if current_stock <= 0:
            reason = f"Out of stock ({current_stock}) at or below reorder level {rule.reorder_level}"
        else:
            reason = f"Stock {current_stock} at or below reorder level {rule.reorder_level}"

        decision = ReorderDecision(
            item_code=rule.item_code,
            current_stock=current_stock,
            reorder_level=rule.reorder_level,
            suggested_quantity=self.suggested_quantity(rule, current_stock),
            urgency=urgency,
            days_to_stockout=days,
            estimated_stockout_date=stockout_date,
            avg_daily_consumption=avg_daily_consumption,
            reason=reason,
        )
        logger.debug(
            "reorder_triggered",
            extra={
                "item_code": rule.item_code,
                "urgency": urgency.value,
                "current_stock": str(current_stock),
            },
        )
        return decision

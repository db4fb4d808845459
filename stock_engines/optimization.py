"""
Module: stock_engines.optimization
Responsibility:
    Recommend a target stock level for an item from its recent demand and
    replenishment rhythm: safety stock at a service level, reorder level,
    economic order quantity, and whether to build stock up or run it down.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  InventoryOptimizationService
    supplies the demand window, receipt dates and cost basis.

Algorithm:
    1. average daily demand = issues in the demand window / window days.
    2. lead time = mean gap between consecutive receipt dates in the window;
       the configured default with fewer than two receipts.
    3. safety stock = z x sqrt(demand x variation factor x lead time), with
       z = 2.33 at >= 99% service, 1.65 at >= 95%, else 1.28.
    4. reorder level = demand x lead time + safety stock.
    5. EOQ = sqrt(2 x annual demand x ordering cost / (carrying rate x unit cost)).
    6. Below 80% of the reorder level -> INCREASE (HIGH under 50%); above
       twice the level -> DECREASE (HIGH above three times); else MAINTAIN.

Invariants enforced:
    - Items with neither demand nor stock get no recommendation.
    - EOQ is None, never a division by zero, when demand or unit cost is 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable, Sequence

from stock_config.schema import EngineConfig
from stock_engines.tracer import traced_engine

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
UNIT = Decimal("1")
DAYS_PER_YEAR = Decimal("365")

# (minimum service level %, z-score), highest first
SERVICE_FACTORS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("99"), Decimal("2.33")),
    (Decimal("95"), Decimal("1.65")),
    (ZERO, Decimal("1.28")),
)


class OptimizationAction(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    MAINTAIN = "MAINTAIN"


class OptimizationPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return {"HIGH": 3, "MEDIUM": 2, "LOW": 1}[self.value]


@dataclass(frozen=True)
class OptimizationMetrics:
    average_daily_demand: Decimal
    lead_time_days: Decimal
    safety_stock: Decimal
    reorder_level: Decimal
    economic_order_quantity: Decimal | None
    stockout_risk_percent: Decimal
    daily_carrying_cost: Decimal
    unit_cost: Decimal
    unit_cost_assumed: bool = False


@dataclass(frozen=True)
class OptimizationRecommendation:
    item_code: str
    current_stock: Decimal
    recommended_stock: Decimal
    action: OptimizationAction
    priority: OptimizationPriority
    potential_savings: Decimal
    reason: str
    metrics: OptimizationMetrics
    category: str | None = None


@dataclass(frozen=True)
class OptimizationSummary:
    total_recommendations: int
    potential_savings: Decimal
    high_priority_items: int
    turnover_improvement_percent: Decimal


def service_factor(service_level_percent: Decimal) -> Decimal:
    """z-score for a cycle service level."""
    for minimum, z in SERVICE_FACTORS:
        if service_level_percent >= minimum:
            return z
    return SERVICE_FACTORS[-1][1]


def infer_lead_time(receipt_dates: Sequence[date], default_days: int) -> Decimal:
    """Mean days between consecutive receipts; ``default_days`` with fewer than two."""
    if len(receipt_dates) < 2:
        return Decimal(default_days)
    span = (max(receipt_dates) - min(receipt_dates)).days
    return Decimal(span) / Decimal(len(receipt_dates) - 1)


def calculate_reorder_level(
    avg_daily_demand: Decimal,
    lead_time_days: Decimal,
    safety_stock: Decimal,
) -> Decimal:
    """``demand x lead time + safety stock``.

    Raises:
        ValueError: If any input is negative.
    """
    if avg_daily_demand < 0:
        raise ValueError(f"avg_daily_demand must be non-negative, got {avg_daily_demand}")
    if lead_time_days < 0:
        raise ValueError(f"lead_time_days must be non-negative, got {lead_time_days}")
    if safety_stock < 0:
        raise ValueError(f"safety_stock must be non-negative, got {safety_stock}")
    return avg_daily_demand * lead_time_days + safety_stock


def calculate_eoq(
    annual_demand: Decimal,
    ordering_cost: Decimal,
    holding_cost: Decimal,
) -> Decimal:
    """Wilson EOQ, ``sqrt(2 x D x S / H)``, to 2 decimal places.

    Raises:
        ValueError: If any input is non-positive.
    """
    if annual_demand <= 0:
        raise ValueError(f"annual_demand must be positive, got {annual_demand}")
    if ordering_cost <= 0:
        raise ValueError(f"ordering_cost must be positive, got {ordering_cost}")
    if holding_cost <= 0:
        raise ValueError(f"holding_cost must be positive, got {holding_cost}")
    return (Decimal("2") * annual_demand * ordering_cost / holding_cost).sqrt().quantize(CENT)


class InventoryOptimizer:
    """Pure per-item stock level optimization."""

    def __init__(self, config: EngineConfig | None = None):
        self._config = config or EngineConfig()

    def safety_stock(
        self,
        avg_daily_demand: Decimal,
        lead_time_days: Decimal,
        service_level_percent: Decimal,
    ) -> Decimal:
        exposure = avg_daily_demand * self._config.demand_variation_factor * lead_time_days
        if exposure <= 0:
            return ZERO
        return service_factor(service_level_percent) * exposure.sqrt()

    def economic_order_quantity(self, avg_daily_demand: Decimal, unit_cost: Decimal) -> Decimal | None:
        cfg = self._config
        if avg_daily_demand <= 0 or unit_cost <= 0 or cfg.ordering_cost <= 0:
            return None
        return calculate_eoq(
            annual_demand=avg_daily_demand * DAYS_PER_YEAR,
            ordering_cost=cfg.ordering_cost,
            holding_cost=cfg.carrying_cost_rate * unit_cost,
        )

    @traced_engine(
        "optimization", "1.0",
        fingerprint_fields=("item_code", "current_stock", "issues_in_window", "unit_cost"),
    )
    def optimize(
        self,
        item_code: str,
        current_stock: Decimal,
        issues_in_window: Decimal,
        receipt_dates: Sequence[date] = (),
        unit_cost: Decimal | None = None,
        service_level_percent: Decimal | None = None,
        category: str | None = None,
    ) -> OptimizationRecommendation | None:
        """Recommendation for one item, or None when it has no activity.

        Args:
            issues_in_window: Issue quantity over the configured demand window.
            receipt_dates: Receipt dates inside the same window.
            unit_cost: Cost basis; None falls back to ``default_unit_cost``.
        """
        cfg = self._config
        avg_daily = issues_in_window / Decimal(cfg.demand_window_days)
        if avg_daily <= 0 and current_stock <= 0:
            return None

        level = service_level_percent if service_level_percent is not None else cfg.service_level_percent
        cost_assumed = unit_cost is None
        cost = cfg.default_unit_cost if unit_cost is None else unit_cost

        lead_time = infer_lead_time(receipt_dates, cfg.default_lead_time_days)
        safety = self.safety_stock(avg_daily, lead_time, level)
        reorder_level = calculate_reorder_level(avg_daily, lead_time, safety)

        action = OptimizationAction.MAINTAIN
        priority = OptimizationPriority.LOW
        savings = ZERO
        reason = "Current stock levels are optimal"
        if current_stock < reorder_level * Decimal("0.8"):
            action = OptimizationAction.INCREASE
            if current_stock < reorder_level * Decimal("0.5"):
                priority = OptimizationPriority.HIGH
            else:
                priority = OptimizationPriority.MEDIUM
            savings = avg_daily * cfg.stockout_cover_days * cost
            reason = f"Stock {current_stock} below reorder level {reorder_level.quantize(CENT)}, risk of stockout"
        elif current_stock > reorder_level * 2:
            action = OptimizationAction.DECREASE
            if current_stock > reorder_level * 3:
                priority = OptimizationPriority.HIGH
            else:
                priority = OptimizationPriority.MEDIUM
            savings = (current_stock - reorder_level) * cost * cfg.carrying_cost_rate
            reason = f"Stock {current_stock} exceeds twice the reorder level, high carrying cost"

        risk = ZERO
        if current_stock < reorder_level:
            risk = (reorder_level - current_stock) / reorder_level * HUNDRED

        metrics = OptimizationMetrics(
            average_daily_demand=avg_daily.quantize(CENT),
            lead_time_days=lead_time.quantize(CENT),
            safety_stock=safety.quantize(CENT),
            reorder_level=reorder_level.quantize(CENT),
            economic_order_quantity=self.economic_order_quantity(avg_daily, cost),
            stockout_risk_percent=risk.quantize(CENT),
            daily_carrying_cost=(
                max(current_stock, ZERO) * cost * cfg.carrying_cost_rate / DAYS_PER_YEAR
            ).quantize(CENT),
            unit_cost=cost,
            unit_cost_assumed=cost_assumed,
        )
        return OptimizationRecommendation(
            item_code=item_code,
            current_stock=current_stock,
            recommended_stock=reorder_level.quantize(UNIT, rounding=ROUND_HALF_UP),
            action=action,
            priority=priority,
            potential_savings=savings.quantize(UNIT, rounding=ROUND_HALF_UP),
            reason=reason,
            metrics=metrics,
            category=category,
        )


def rank_recommendations(
    recommendations: Iterable[OptimizationRecommendation],
) -> list[OptimizationRecommendation]:
    """Highest priority first, then largest savings, then item code."""
    return sorted(
        recommendations,
        key=lambda r: (-r.priority.rank, -r.potential_savings, r.item_code),
    )


def summarize_optimization(
    recommendations: Sequence[OptimizationRecommendation],
) -> OptimizationSummary:
    """Totals over a set of recommendations.

    Turnover improvement credits 15% per item whose stockout risk exceeds
    50% and 5% otherwise, averaged and rounded to a whole percent.
    """
    if not recommendations:
        return OptimizationSummary(0, ZERO, 0, ZERO)
    credits = sum(
        (Decimal("15") if r.metrics.stockout_risk_percent > 50 else Decimal("5"))
        for r in recommendations
    )
    return OptimizationSummary(
        total_recommendations=len(recommendations),
        potential_savings=sum((r.potential_savings for r in recommendations), ZERO),
        high_priority_items=sum(1 for r in recommendations if r.priority is OptimizationPriority.HIGH),
        turnover_improvement_percent=(credits / len(recommendations)).quantize(
            UNIT, rounding=ROUND_HALF_UP,
        ),
    )

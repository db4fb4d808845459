"""
Classification enums and the per-item classification record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class AbcClass(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class MovementClass(str, Enum):
    FAST_MOVING = "FAST_MOVING"
    MEDIUM_MOVING = "MEDIUM_MOVING"
    SLOW_MOVING = "SLOW_MOVING"
    DEAD_STOCK = "DEAD_STOCK"


class MovementTrend(str, Enum):
    INCREASING = "INCREASING"
    STABLE = "STABLE"
    DECREASING = "DECREASING"
    NO_DATA = "NO_DATA"


class StockRecommendation(str, Enum):
    INCREASE_STOCK = "INCREASE_STOCK"
    MAINTAIN_STOCK = "MAINTAIN_STOCK"
    REDUCE_STOCK = "REDUCE_STOCK"
    DISCONTINUE = "DISCONTINUE"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgingAction(str, Enum):
    MONITOR = "monitor"
    REVIEW = "review"
    LIQUIDATE = "liquidate"
    WRITEOFF = "writeoff"


class AgingTrend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DETERIORATING = "deteriorating"


@dataclass(frozen=True)
class ClassificationRecord:
    """Derived classification of one item at one point in time.

    Never authoritative: the record is replaced wholesale on each refresh
    and can always be recomputed from the ledger.
    """

    item_code: str
    current_stock: Decimal
    total_value: Decimal
    abc_class: AbcClass
    movement_class: MovementClass
    velocity: Decimal | None
    turnover_ratio: Decimal | None
    movement_trend: MovementTrend
    stock_recommendation: StockRecommendation
    issues_in_window: Decimal
    receipts_in_window: Decimal
    days_since_last_transaction: int
    aging_bracket: str
    risk_level: RiskLevel
    recommended_action: AgingAction
    valuation_impact: Decimal
    aging_trend: AgingTrend
    category: str | None = None
    run_id: UUID | None = None
    computed_at: datetime | None = None

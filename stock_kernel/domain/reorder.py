"""
Reorder rule and suggestion DTOs.

Rules are maintained by purchasing staff; suggestions are produced by the
reorder engine and move through ``PENDING -> {APPROVED -> ORDERED, REJECTED}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReorderUrgency(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    ReorderUrgency.LOW: 0,
    ReorderUrgency.MEDIUM: 1,
    ReorderUrgency.HIGH: 2,
    ReorderUrgency.CRITICAL: 3,
}


class SuggestionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    ORDERED = "ORDERED"


@dataclass(frozen=True)
class ReorderRule:
    """Reorder policy for one item from one supplier."""

    item_code: str
    reorder_level: Decimal
    reorder_quantity: Decimal
    lead_time_days: int = 7
    safety_stock: Decimal = Decimal("0")
    minimum_order_quantity: Decimal = Decimal("1")
    maximum_stock: Decimal | None = None
    supplier_code: str | None = None
    is_active: bool = True
    rule_id: UUID | None = None


@dataclass(frozen=True)
class ReorderSuggestion:
    """A persisted purchasing recommendation."""

    suggestion_id: UUID
    item_code: str
    current_stock: Decimal
    reorder_level: Decimal
    suggested_quantity: Decimal
    urgency: ReorderUrgency
    status: SuggestionStatus
    reason: str
    rule_id: UUID | None = None
    supplier_code: str | None = None
    days_to_stockout: Decimal | None = None
    estimated_stockout_date: date | None = None
    avg_daily_consumption: Decimal = Decimal("0")
    estimated_cost: Decimal | None = None
    cycle_id: UUID | None = None
    created_at: datetime | None = None
    decided_by: UUID | None = None
    decided_at: datetime | None = None
    decision_note: str | None = None
    po_number: str | None = None

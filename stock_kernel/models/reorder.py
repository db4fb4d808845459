"""
Module: stock_kernel.models.reorder
Responsibility: Persistence for reorder rules (purchasing configuration) and
    reorder suggestions (engine output with an approval lifecycle).

Architecture position: Kernel > Models.  Inherits TrackedBase.

Invariants enforced:
    - Rules are deactivated, never deleted (is_active flag).
    - Suggestions reference the rule that produced them via rule_id (no FK,
      the rule row may be deactivated later).
    - Enum fields stored as String(20).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.reorder import (
    ReorderRule,
    ReorderSuggestion,
    ReorderUrgency,
    SuggestionStatus,
)


class ReorderRuleModel(TrackedBase):
    """ORM model for a reorder rule.  Maps to ReorderRule."""

    __tablename__ = "stock_reorder_rules"

    __table_args__ = (
        Index("idx_reorder_rule_item_active", "item_code", "is_active"),
    )

    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reorder_level: Mapped[Decimal] = mapped_column(nullable=False)
    reorder_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    safety_stock: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    lead_time_days: Mapped[int] = mapped_column(nullable=False, default=7)
    minimum_order_quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("1"))
    maximum_stock: Mapped[Decimal | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> ReorderRule:
        return ReorderRule(
            rule_id=self.id,
            item_code=self.item_code,
            supplier_code=self.supplier_code,
            reorder_level=self.reorder_level,
            reorder_quantity=self.reorder_quantity,
            safety_stock=self.safety_stock,
            lead_time_days=self.lead_time_days,
            minimum_order_quantity=self.minimum_order_quantity,
            maximum_stock=self.maximum_stock,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: ReorderRule, created_by_id: UUID) -> "ReorderRuleModel":
        kwargs = {}
        if dto.rule_id is not None:
            kwargs["id"] = dto.rule_id
        return cls(
            item_code=dto.item_code,
            supplier_code=dto.supplier_code,
            reorder_level=dto.reorder_level,
            reorder_quantity=dto.reorder_quantity,
            safety_stock=dto.safety_stock,
            lead_time_days=dto.lead_time_days,
            minimum_order_quantity=dto.minimum_order_quantity,
            maximum_stock=dto.maximum_stock,
            is_active=dto.is_active,
            created_by_id=created_by_id,
            **kwargs,
        )

    def __repr__(self) -> str:
        return (
            f"<ReorderRuleModel {self.id} item={self.item_code} "
            f"level={self.reorder_level} active={self.is_active}>"
        )


class ReorderSuggestionModel(TrackedBase):
    """ORM model for a reorder suggestion.  Maps to ReorderSuggestion."""

    __tablename__ = "stock_reorder_suggestions"

    __table_args__ = (
        Index("idx_reorder_sugg_item", "item_code"),
        Index("idx_reorder_sugg_status", "status"),
        Index("idx_reorder_sugg_cycle", "cycle_id"),
    )

    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_id: Mapped[UUID | None] = mapped_column(nullable=True)
    supplier_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_stock: Mapped[Decimal] = mapped_column(nullable=False)
    reorder_level: Mapped[Decimal] = mapped_column(nullable=False)
    suggested_quantity: Mapped[Decimal] = mapped_column(nullable=False)
    urgency: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    days_to_stockout: Mapped[Decimal | None] = mapped_column(nullable=True)
    estimated_stockout_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    avg_daily_consumption: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    estimated_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    cycle_id: Mapped[UUID | None] = mapped_column(nullable=True)

    # Decision trail
    decided_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(nullable=True)
    decision_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    po_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> ReorderSuggestion:
        return ReorderSuggestion(
            suggestion_id=self.id,
            item_code=self.item_code,
            rule_id=self.rule_id,
            supplier_code=self.supplier_code,
            current_stock=self.current_stock,
            reorder_level=self.reorder_level,
            suggested_quantity=self.suggested_quantity,
            urgency=ReorderUrgency(self.urgency),
            status=SuggestionStatus(self.status),
            reason=self.reason,
            days_to_stockout=self.days_to_stockout,
            estimated_stockout_date=self.estimated_stockout_date,
            avg_daily_consumption=self.avg_daily_consumption,
            estimated_cost=self.estimated_cost,
            cycle_id=self.cycle_id,
            created_at=self.created_at,
            decided_by=self.decided_by_id,
            decided_at=self.decided_at,
            decision_note=self.decision_note,
            po_number=self.po_number,
        )

    def __repr__(self) -> str:
        return (
            f"<ReorderSuggestionModel {self.id} item={self.item_code} "
            f"urgency={self.urgency} status={self.status}>"
        )

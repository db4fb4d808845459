"""
Module: stock_kernel.models.classification
Responsibility: The classification arena -- one derived record per item,
    replaced wholesale by each refresh.

Architecture position: Kernel > Models.  Never authoritative: every column
    can be recomputed from the ledger.  Replacement happens per item inside a
    SAVEPOINT so a reader sees either the previous or the new record.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base
from stock_kernel.domain.classification import (
    AbcClass,
    AgingAction,
    AgingTrend,
    ClassificationRecord,
    MovementClass,
    MovementTrend,
    RiskLevel,
    StockRecommendation,
)


class ClassificationRecordModel(Base):
    """ORM model for ClassificationRecord."""

    __tablename__ = "stock_classifications"

    __table_args__ = (
        Index("idx_classification_abc", "abc_class"),
        Index("idx_classification_movement", "movement_class"),
    )

    item_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_stock: Mapped[Decimal] = mapped_column(nullable=False)
    total_value: Mapped[Decimal] = mapped_column(nullable=False)
    abc_class: Mapped[str] = mapped_column(String(1), nullable=False)
    movement_class: Mapped[str] = mapped_column(String(20), nullable=False)
    velocity: Mapped[Decimal | None] = mapped_column(nullable=True)
    turnover_ratio: Mapped[Decimal | None] = mapped_column(nullable=True)
    movement_trend: Mapped[str] = mapped_column(String(20), nullable=False)
    stock_recommendation: Mapped[str] = mapped_column(String(20), nullable=False)
    issues_in_window: Mapped[Decimal] = mapped_column(nullable=False)
    receipts_in_window: Mapped[Decimal] = mapped_column(nullable=False)
    days_since_last_transaction: Mapped[int] = mapped_column(nullable=False)
    aging_bracket: Mapped[str] = mapped_column(String(20), nullable=False)
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False)
    recommended_action: Mapped[str] = mapped_column(String(20), nullable=False)
    valuation_impact: Mapped[Decimal] = mapped_column(nullable=False)
    aging_trend: Mapped[str] = mapped_column(String(20), nullable=False)
    run_id: Mapped[UUID | None] = mapped_column(nullable=True)
    computed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ClassificationRecord:
        return ClassificationRecord(
            item_code=self.item_code,
            category=self.category,
            current_stock=self.current_stock,
            total_value=self.total_value,
            abc_class=AbcClass(self.abc_class),
            movement_class=MovementClass(self.movement_class),
            velocity=self.velocity,
            turnover_ratio=self.turnover_ratio,
            movement_trend=MovementTrend(self.movement_trend),
            stock_recommendation=StockRecommendation(self.stock_recommendation),
            issues_in_window=self.issues_in_window,
            receipts_in_window=self.receipts_in_window,
            days_since_last_transaction=self.days_since_last_transaction,
            aging_bracket=self.aging_bracket,
            risk_level=RiskLevel(self.risk_level),
            recommended_action=AgingAction(self.recommended_action),
            valuation_impact=self.valuation_impact,
            aging_trend=AgingTrend(self.aging_trend),
            run_id=self.run_id,
            computed_at=self.computed_at,
        )

    @classmethod
    def from_dto(cls, dto: ClassificationRecord) -> "ClassificationRecordModel":
        return cls(
            item_code=dto.item_code,
            category=dto.category,
            current_stock=dto.current_stock,
            total_value=dto.total_value,
            abc_class=dto.abc_class.value,
            movement_class=dto.movement_class.value,
            velocity=dto.velocity,
            turnover_ratio=dto.turnover_ratio,
            movement_trend=dto.movement_trend.value,
            stock_recommendation=dto.stock_recommendation.value,
            issues_in_window=dto.issues_in_window,
            receipts_in_window=dto.receipts_in_window,
            days_since_last_transaction=dto.days_since_last_transaction,
            aging_bracket=dto.aging_bracket,
            risk_level=dto.risk_level.value,
            recommended_action=dto.recommended_action.value,
            valuation_impact=dto.valuation_impact,
            aging_trend=dto.aging_trend.value,
            run_id=dto.run_id,
            computed_at=dto.computed_at,
        )

    def __repr__(self) -> str:
        return (
            f"<ClassificationRecordModel {self.item_code} abc={self.abc_class} "
            f"movement={self.movement_class}>"
        )

"""
Module: stock_kernel.models.ledger
Responsibility: SQLAlchemy ORM persistence for the three append-only
    transaction streams: opening stock, goods-received-notes and issues.

Architecture position: Kernel > Models.  Inherits from TrackedBase
    (stock_kernel.db.base).  Item codes are plain strings with NO foreign key
    to the item master: ledger rows may arrive before the item is described.

Invariants enforced:
    - Quantities and costs use Decimal (Numeric(38,9)) -- NEVER float.
    - Rows are never updated or deleted once flushed (see db/immutability.py).
    - reversal_of_id is UNIQUE: an entry can be reversed at most once, even
      under concurrent reversal attempts.
    - seq is allocated from the ``ledger_entry`` sequence and orders entries
      that share a date.

Failure modes:
    - IntegrityError on a second reversal of the same entry.
    - ImmutabilityViolationError on any UPDATE or DELETE.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.entries import (
    EntryKind,
    IssueEntry,
    OpeningStockEntry,
    ReceiptEntry,
)


class LedgerEntryBase(TrackedBase):
    """Columns shared by every ledger stream."""

    __abstract__ = True

    item_code: Mapped[str] = mapped_column(String(50), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    seq: Mapped[int] = mapped_column(nullable=False)

    # Compensating entry link (None for ordinary entries)
    reversal_of_id: Mapped[UUID | None] = mapped_column(nullable=True, unique=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None


# =============================================================================
# OpeningStockEntryModel
# =============================================================================


class OpeningStockEntryModel(LedgerEntryBase):
    """
    ORM model for opening-stock entries.

    Maps to: stock_kernel.domain.entries.OpeningStockEntry.
    """

    __tablename__ = "stock_opening_entries"

    __table_args__ = (
        Index("idx_opening_item_date", "item_code", "entry_date"),
    )

    kind = EntryKind.OPENING

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> OpeningStockEntry:
        return OpeningStockEntry(
            item_code=self.item_code,
            entry_date=self.entry_date,
            quantity=self.quantity,
            remarks=self.remarks,
            entry_id=self.id,
            seq=self.seq,
            reversal_of_id=self.reversal_of_id,
            reason=self.reason,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: OpeningStockEntry, seq: int, created_by_id: UUID) -> "OpeningStockEntryModel":
        return cls(
            item_code=dto.item_code,
            entry_date=dto.entry_date,
            quantity=dto.quantity,
            remarks=dto.remarks,
            seq=seq,
            reversal_of_id=dto.reversal_of_id,
            reason=dto.reason,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<OpeningStockEntryModel {self.id} item={self.item_code} "
            f"date={self.entry_date} qty={self.quantity}>"
        )


# =============================================================================
# ReceiptEntryModel
# =============================================================================


class ReceiptEntryModel(LedgerEntryBase):
    """
    ORM model for goods-received-notes.

    Maps to: stock_kernel.domain.entries.ReceiptEntry.

    Guarantees:
        - unit_cost and amount are both stored when either is known; both
          NULL means the cost basis is missing.
    """

    __tablename__ = "stock_receipts"

    __table_args__ = (
        Index("idx_receipt_item_date", "item_code", "entry_date"),
        Index("idx_receipt_grn", "grn_number"),
    )

    kind = EntryKind.RECEIPT

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(100), nullable=True)
    grn_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_dto(self) -> ReceiptEntry:
        return ReceiptEntry(
            item_code=self.item_code,
            entry_date=self.entry_date,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            amount=self.amount,
            supplier=self.supplier,
            grn_number=self.grn_number,
            entry_id=self.id,
            seq=self.seq,
            reversal_of_id=self.reversal_of_id,
            reason=self.reason,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: ReceiptEntry, seq: int, created_by_id: UUID) -> "ReceiptEntryModel":
        return cls(
            item_code=dto.item_code,
            entry_date=dto.entry_date,
            quantity=dto.quantity,
            unit_cost=dto.unit_cost,
            amount=dto.amount,
            supplier=dto.supplier,
            grn_number=dto.grn_number,
            seq=seq,
            reversal_of_id=dto.reversal_of_id,
            reason=dto.reason,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<ReceiptEntryModel {self.id} item={self.item_code} "
            f"date={self.entry_date} qty={self.quantity} cost={self.unit_cost}>"
        )


# =============================================================================
# IssueEntryModel
# =============================================================================


class IssueEntryModel(LedgerEntryBase):
    """
    ORM model for stock issues.

    Maps to: stock_kernel.domain.entries.IssueEntry.
    """

    __tablename__ = "stock_issues"

    __table_args__ = (
        Index("idx_issue_item_date", "item_code", "entry_date"),
    )

    kind = EntryKind.ISSUE

    purpose: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def to_dto(self) -> IssueEntry:
        return IssueEntry(
            item_code=self.item_code,
            entry_date=self.entry_date,
            quantity=self.quantity,
            purpose=self.purpose,
            entry_id=self.id,
            seq=self.seq,
            reversal_of_id=self.reversal_of_id,
            reason=self.reason,
            created_at=self.created_at,
        )

    @classmethod
    def from_dto(cls, dto: IssueEntry, seq: int, created_by_id: UUID) -> "IssueEntryModel":
        return cls(
            item_code=dto.item_code,
            entry_date=dto.entry_date,
            quantity=dto.quantity,
            purpose=dto.purpose,
            seq=seq,
            reversal_of_id=dto.reversal_of_id,
            reason=dto.reason,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<IssueEntryModel {self.id} item={self.item_code} "
            f"date={self.entry_date} qty={self.quantity}>"
        )


LEDGER_MODELS: dict[EntryKind, type[LedgerEntryBase]] = {
    EntryKind.OPENING: OpeningStockEntryModel,
    EntryKind.RECEIPT: ReceiptEntryModel,
    EntryKind.ISSUE: IssueEntryModel,
}

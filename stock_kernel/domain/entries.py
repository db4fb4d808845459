"""
Ledger entry DTOs (``stock_kernel.domain.entries``).

Responsibility
--------------
Frozen value objects for the three append-only transaction streams:
opening-stock entries, goods-received-notes (receipts) and issues, plus the
``ItemLedger`` snapshot the balance and valuation engines consume.

Architecture
------------
Layer: **Kernel > Domain** -- pure data, zero I/O.  The same DTO is used as
the append request (``entry_id``/``seq`` unset) and as the stored record
returned from the log.

Invariants
----------
- Quantities and costs are ``Decimal``, never ``float``.
- A reversal row has ``reversal_of_id`` set and copies the original's item,
  date and quantity.  Reversal rows and reversed originals are never *live*.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Union
from uuid import UUID


class EntryKind(str, Enum):
    """Transaction stream an entry belongs to."""

    OPENING = "opening"
    RECEIPT = "receipt"
    ISSUE = "issue"


@dataclass(frozen=True)
class OpeningStockEntry:
    """Starting balance for an item as of ``entry_date``."""

    item_code: str
    entry_date: date
    quantity: Decimal
    remarks: str | None = None
    entry_id: UUID | None = None
    seq: int | None = None
    reversal_of_id: UUID | None = None
    reason: str | None = None
    created_at: datetime | None = None

    kind = EntryKind.OPENING

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None


@dataclass(frozen=True)
class ReceiptEntry:
    """Goods-received-note: stock arriving, optionally with a cost basis.

    Either ``unit_cost`` or ``amount`` (or both) may be recorded.  Neither
    means the cost is unknown.
    """

    item_code: str
    entry_date: date
    quantity: Decimal
    unit_cost: Decimal | None = None
    amount: Decimal | None = None
    supplier: str | None = None
    grn_number: str | None = None
    entry_id: UUID | None = None
    seq: int | None = None
    reversal_of_id: UUID | None = None
    reason: str | None = None
    created_at: datetime | None = None

    kind = EntryKind.RECEIPT

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    @property
    def effective_unit_cost(self) -> Decimal | None:
        """Recorded unit cost, else amount / quantity, else None."""
        if self.unit_cost is not None:
            return self.unit_cost
        if self.amount is not None and self.quantity > 0:
            return self.amount / self.quantity
        return None

    @property
    def has_cost(self) -> bool:
        return self.effective_unit_cost is not None


@dataclass(frozen=True)
class IssueEntry:
    """Stock leaving the store."""

    item_code: str
    entry_date: date
    quantity: Decimal
    purpose: str | None = None
    entry_id: UUID | None = None
    seq: int | None = None
    reversal_of_id: UUID | None = None
    reason: str | None = None
    created_at: datetime | None = None

    kind = EntryKind.ISSUE

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None


TransactionRecord = Union[OpeningStockEntry, ReceiptEntry, IssueEntry]


@dataclass(frozen=True)
class ItemLedger:
    """Live entries for one item, read in a single snapshot.

    Each tuple is ordered by (entry_date, seq).
    """

    item_code: str
    openings: tuple[OpeningStockEntry, ...] = ()
    receipts: tuple[ReceiptEntry, ...] = ()
    issues: tuple[IssueEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.openings or self.receipts or self.issues)

    @property
    def last_receipt_date(self) -> date | None:
        return max((r.entry_date for r in self.receipts), default=None)

    @property
    def last_issue_date(self) -> date | None:
        return max((i.entry_date for i in self.issues), default=None)

    def all_entries(self) -> tuple[TransactionRecord, ...]:
        """Every live entry ordered by (entry_date, seq)."""
        merged: list[TransactionRecord] = [*self.openings, *self.receipts, *self.issues]
        merged.sort(key=lambda e: (e.entry_date, e.seq or 0))
        return tuple(merged)


@dataclass(frozen=True)
class RejectedRow:
    """One row refused by a bulk append."""

    index: int
    item_code: str | None
    error_code: str
    message: str


@dataclass(frozen=True)
class BulkAppendResult:
    """Outcome of ``LedgerStore.append_many``."""

    accepted: tuple[UUID, ...] = ()
    rejected: tuple[RejectedRow, ...] = ()

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


@dataclass(frozen=True)
class ReversalResult:
    """Result of reversing a ledger entry."""

    original_entry_id: UUID
    reversal_entry_id: UUID
    kind: EntryKind
    item_code: str
    entry_date: date
    quantity: Decimal
    reason: str
    reversed_by: UUID
    reversed_at: datetime | None = field(default=None)

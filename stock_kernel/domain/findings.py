"""
Data integrity findings.

A finding is a reportable value attached to a computed view, not an
exception: the balance engine reports negative stock instead of clamping it,
the valuation engine reports a missing cost basis instead of guessing one.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class FindingCode(str, Enum):
    NEGATIVE_STOCK = "NEGATIVE_STOCK"
    FUTURE_DATED_TRANSACTION = "FUTURE_DATED_TRANSACTION"
    MISSING_COST_BASIS = "MISSING_COST_BASIS"
    RECEIPT_WITHOUT_COST = "RECEIPT_WITHOUT_COST"


class FindingSeverity(str, Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class DataIntegrityFinding:
    """One detected data problem for an item.

    ``expected`` and ``actual`` are rendered as strings so findings can be
    logged and exported without type juggling.
    """

    item_code: str
    code: FindingCode
    severity: FindingSeverity
    expected: str
    actual: str
    recommendation: str
    entry_id: UUID | None = None

    @classmethod
    def negative_stock(cls, item_code: str, current_stock: Decimal) -> DataIntegrityFinding:
        return cls(
            item_code=item_code,
            code=FindingCode.NEGATIVE_STOCK,
            severity=FindingSeverity.ERROR,
            expected=">= 0",
            actual=str(current_stock),
            recommendation="Review issue entries; record missing receipts or reverse over-issues",
        )

    @classmethod
    def future_dated(cls, item_code: str, entry_id: UUID | None, entry_date, as_of) -> DataIntegrityFinding:
        return cls(
            item_code=item_code,
            code=FindingCode.FUTURE_DATED_TRANSACTION,
            severity=FindingSeverity.WARNING,
            expected=f"<= {as_of}",
            actual=str(entry_date),
            recommendation="Verify the entry date and reverse the entry if it was mis-keyed",
            entry_id=entry_id,
        )

    @classmethod
    def missing_cost_basis(cls, item_code: str, quantity: Decimal) -> DataIntegrityFinding:
        return cls(
            item_code=item_code,
            code=FindingCode.MISSING_COST_BASIS,
            severity=FindingSeverity.WARNING,
            expected="at least one receipt with a unit cost or amount",
            actual=f"no costed receipts (quantity {quantity})",
            recommendation="Record unit cost or amount on the item's goods-received-notes",
        )

    @classmethod
    def receipt_without_cost(cls, item_code: str, entry_id: UUID | None) -> DataIntegrityFinding:
        return cls(
            item_code=item_code,
            code=FindingCode.RECEIPT_WITHOUT_COST,
            severity=FindingSeverity.WARNING,
            expected="unit cost or amount",
            actual="neither recorded",
            recommendation="Reverse and re-enter the goods-received-note with its cost",
            entry_id=entry_id,
        )

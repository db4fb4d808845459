"""
Module: stock_engines.balance
Responsibility:
    Derive an item's on-hand position from its live ledger entries:
    ``current_stock = opening_stock + total_receipts - total_issues``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes an ``ItemLedger``
    snapshot read by LedgerSelector in a single statement.

Invariants enforced:
    - Ledger identity holds for every returned StockPosition.
    - Deterministic and idempotent: the position is re-derived on every
      call from the entries given; nothing is carried between calls.
    - Negative stock is reported as a finding and never clamped.

Algorithm:
    1. Pick the live opening entry with the latest date <= the opening
       cutoff (latest overall when no cutoff).  No opening means zero, with
       the cutoff itself as the lower bound (or no bound without a cutoff).
    2. Sum receipts and issues dated on or after that lower bound.
    3. Flag entries dated after ``as_of_date`` and a negative result.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from stock_engines.tracer import traced_engine
from stock_kernel.domain.entries import ItemLedger, OpeningStockEntry
from stock_kernel.domain.findings import DataIntegrityFinding
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.balance")

ZERO = Decimal("0")


@dataclass(frozen=True)
class StockPosition:
    """Derived on-hand position for one item.  Never stored."""

    item_code: str
    opening_stock: Decimal
    opening_date: date | None
    total_receipts: Decimal
    total_issues: Decimal
    current_stock: Decimal
    as_of_date: date
    receipt_count: int = 0
    issue_count: int = 0
    counted_from: date | None = None
    findings: tuple[DataIntegrityFinding, ...] = ()

    @property
    def has_negative_stock(self) -> bool:
        return self.current_stock < 0


class BalanceCalculator:
    """Pure balance derivation."""

    @staticmethod
    def select_opening(
        openings: tuple[OpeningStockEntry, ...],
        as_of_opening_date: date | None,
    ) -> OpeningStockEntry | None:
        """Latest opening entry on or before the cutoff; ties go to the later seq."""
        candidates = [
            o for o in openings
            if as_of_opening_date is None or o.entry_date <= as_of_opening_date
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda o: (o.entry_date, o.seq or 0))

    @traced_engine("balance", "1.0", fingerprint_fields=("as_of_opening_date", "as_of_date"))
    def compute_position(
        self,
        ledger: ItemLedger,
        as_of_opening_date: date | None = None,
        as_of_date: date | None = None,
    ) -> StockPosition:
        """Compute the position of ``ledger.item_code``.

        Args:
            ledger: Live entries for the item.
            as_of_opening_date: Opening-stock cutoff; None uses the latest opening.
            as_of_date: "Today" for the future-dated check.  Defaults to the
                latest entry date (no entry can then be in the future).
        """
        opening = self.select_opening(ledger.openings, as_of_opening_date)
        if opening is not None:
            opening_stock = opening.quantity
            lower_bound: date | None = opening.entry_date
        else:
            opening_stock = ZERO
            lower_bound = as_of_opening_date

        receipts = [
            r for r in ledger.receipts
            if lower_bound is None or r.entry_date >= lower_bound
        ]
        issues = [
            i for i in ledger.issues
            if lower_bound is None or i.entry_date >= lower_bound
        ]

        total_receipts = sum((r.quantity for r in receipts), ZERO)
        total_issues = sum((i.quantity for i in issues), ZERO)
        current_stock = opening_stock + total_receipts - total_issues

        if as_of_date is None:
            latest = [e.entry_date for e in ledger.all_entries()]
            as_of_date = max(latest) if latest else (as_of_opening_date or date.min)

        findings: list[DataIntegrityFinding] = []
        counted = ([opening] if opening is not None else []) + receipts + issues
        for entry in sorted(counted, key=lambda e: (e.entry_date, e.seq or 0)):
            if entry.entry_date > as_of_date:
                findings.append(
                    DataIntegrityFinding.future_dated(
                        ledger.item_code, entry.entry_id, entry.entry_date, as_of_date,
                    )
                )

        if current_stock < 0:
            findings.append(DataIntegrityFinding.negative_stock(ledger.item_code, current_stock))
            logger.warning(
                "negative_stock_detected",
                extra={
                    "item_code": ledger.item_code,
                    "current_stock": str(current_stock),
                    "opening_stock": str(opening_stock),
                    "total_receipts": str(total_receipts),
                    "total_issues": str(total_issues),
                },
            )

        return StockPosition(
            item_code=ledger.item_code,
            opening_stock=opening_stock,
            opening_date=opening.entry_date if opening is not None else None,
            total_receipts=total_receipts,
            total_issues=total_issues,
            current_stock=current_stock,
            as_of_date=as_of_date,
            receipt_count=len(receipts),
            issue_count=len(issues),
            counted_from=lower_bound,
            findings=tuple(findings),
        )


def window_totals(
    ledger: ItemLedger,
    as_of_date: date,
    window_days: int,
    since: date | None = None,
) -> tuple[Decimal, Decimal]:
    """(issues, receipts) dated within the trailing window ending ``as_of_date``.

    The window is ``as_of_date - window_days <= entry_date <= as_of_date``,
    clamped below by ``since`` (pass ``StockPosition.counted_from`` so entries
    superseded by a newer opening are left out).
    """
    start = as_of_date - timedelta(days=window_days)
    if since is not None and since > start:
        start = since
    issues = sum(
        (i.quantity for i in ledger.issues if start <= i.entry_date <= as_of_date), ZERO
    )
    receipts = sum(
        (r.quantity for r in ledger.receipts if start <= r.entry_date <= as_of_date), ZERO
    )
    return issues, receipts

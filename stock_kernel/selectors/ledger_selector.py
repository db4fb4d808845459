"""
Module: stock_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries.  Every per-item read is ONE
    ``UNION ALL`` statement over the three transaction streams, so the
    opening, receipt and issue rows an engine sees always come from the same
    snapshot, even while other sessions append concurrently.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - No stored balances: callers derive positions from the rows returned.
    - Live filter: reversal rows and reversed originals are excluded unless
      ``include_reversed`` is requested.
    - Ordering: (entry_date, seq).  seq is globally monotonic across streams.
"""

from datetime import date

from sqlalchemy import Numeric, String, and_, cast, exists, literal, null, select, union_all
from sqlalchemy.orm import aliased

from stock_kernel.domain.entries import (
    EntryKind,
    IssueEntry,
    ItemLedger,
    OpeningStockEntry,
    ReceiptEntry,
    TransactionRecord,
)
from stock_kernel.models.item import ItemMasterModel
from stock_kernel.models.ledger import (
    IssueEntryModel,
    OpeningStockEntryModel,
    ReceiptEntryModel,
)
from stock_kernel.selectors.base import BaseSelector


def _null_decimal():
    return cast(null(), Numeric(38, 9))


def _null_text():
    return cast(null(), String)


def live_entry_condition(model):
    """Row is neither a reversal nor reversed."""
    reversal = aliased(model)
    return and_(
        model.reversal_of_id.is_(None),
        ~exists().where(reversal.reversal_of_id == model.id),
    )


class LedgerSelector(BaseSelector):
    """Read-only queries over the transaction log."""

    def _stream_select(self, model, kind: EntryKind, extra_columns: dict):
        columns = [
            literal(kind.value, type_=String).label("kind"),
            model.id.label("entry_id"),
            model.item_code.label("item_code"),
            model.entry_date.label("entry_date"),
            model.quantity.label("quantity"),
            model.seq.label("seq"),
            model.reversal_of_id.label("reversal_of_id"),
            model.reason.label("reason"),
            model.created_at.label("created_at"),
        ]
        for name in ("unit_cost", "amount"):
            columns.append(extra_columns.get(name, _null_decimal()).label(name))
        for name in ("supplier", "grn_number", "remarks", "purpose"):
            columns.append(extra_columns.get(name, _null_text()).label(name))
        return select(*columns)

    def _union_statement(
        self,
        item_code: str,
        date_from: date | None,
        date_to: date | None,
        include_reversed: bool,
    ):
        parts = []
        streams = (
            (OpeningStockEntryModel, EntryKind.OPENING,
             {"remarks": OpeningStockEntryModel.remarks}),
            (ReceiptEntryModel, EntryKind.RECEIPT,
             {
                 "unit_cost": ReceiptEntryModel.unit_cost,
                 "amount": ReceiptEntryModel.amount,
                 "supplier": ReceiptEntryModel.supplier,
                 "grn_number": ReceiptEntryModel.grn_number,
             }),
            (IssueEntryModel, EntryKind.ISSUE,
             {"purpose": IssueEntryModel.purpose}),
        )
        for model, kind, extra in streams:
            stmt = self._stream_select(model, kind, extra).where(
                model.item_code == item_code
            )
            if date_from is not None:
                stmt = stmt.where(model.entry_date >= date_from)
            if date_to is not None:
                stmt = stmt.where(model.entry_date <= date_to)
            if not include_reversed:
                stmt = stmt.where(live_entry_condition(model))
            parts.append(stmt)

        union = union_all(*parts).subquery("ledger")
        return select(union).order_by(union.c.entry_date, union.c.seq)

    @staticmethod
    def _row_to_dto(row) -> TransactionRecord:
        common = dict(
            item_code=row.item_code,
            entry_date=row.entry_date,
            quantity=row.quantity,
            entry_id=row.entry_id,
            seq=row.seq,
            reversal_of_id=row.reversal_of_id,
            reason=row.reason,
            created_at=row.created_at,
        )
        kind = EntryKind(row.kind)
        if kind is EntryKind.OPENING:
            return OpeningStockEntry(remarks=row.remarks, **common)
        if kind is EntryKind.RECEIPT:
            return ReceiptEntry(
                unit_cost=row.unit_cost,
                amount=row.amount,
                supplier=row.supplier,
                grn_number=row.grn_number,
                **common,
            )
        return IssueEntry(purpose=row.purpose, **common)

    def entries_for_item(
        self,
        item_code: str,
        date_from: date | None = None,
        date_to: date | None = None,
        include_reversed: bool = False,
    ) -> tuple[TransactionRecord, ...]:
        """All entries for one item ordered by (entry_date, seq)."""
        rows = self.session.execute(
            self._union_statement(item_code, date_from, date_to, include_reversed)
        ).all()
        return tuple(self._row_to_dto(row) for row in rows)

    def item_ledger(self, item_code: str) -> ItemLedger:
        """Live entries for one item, split by stream, from one statement."""
        entries = self.entries_for_item(item_code)
        return ItemLedger(
            item_code=item_code,
            openings=tuple(e for e in entries if e.kind is EntryKind.OPENING),
            receipts=tuple(e for e in entries if e.kind is EntryKind.RECEIPT),
            issues=tuple(e for e in entries if e.kind is EntryKind.ISSUE),
        )

    def catalog_item_codes(self) -> tuple[str, ...]:
        """Every item with a master row or any ledger entry, sorted."""
        stmt = union_all(
            select(ItemMasterModel.item_code.label("item_code")),
            select(OpeningStockEntryModel.item_code),
            select(ReceiptEntryModel.item_code),
            select(IssueEntryModel.item_code),
        ).subquery("codes")
        rows = self.session.execute(
            select(stmt.c.item_code).distinct().order_by(stmt.c.item_code)
        ).scalars().all()
        return tuple(rows)

    def item_categories(self, item_codes=None) -> dict[str, str | None]:
        """Map item_code -> category from the item master."""
        stmt = select(ItemMasterModel.item_code, ItemMasterModel.category)
        if item_codes is not None:
            stmt = stmt.where(ItemMasterModel.item_code.in_(list(item_codes)))
        return {code: category for code, category in self.session.execute(stmt).all()}

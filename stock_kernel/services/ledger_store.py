"""
LedgerStore -- the append-only transaction log.

Responsibility:
    Validates and appends opening-stock, receipt and issue entries; reads them
    back per item; corrects them by appending compensating reversal entries.
    There is no update and no delete path.

Architecture position:
    Kernel > Services -- imperative shell over the ledger models.  Reads are
    delegated to LedgerSelector.

Invariants enforced:
    - Validation happens BEFORE the entry reaches the log: a rejected entry
      leaves no trace.
    - Quantities: opening >= 0; receipt and issue > 0.
    - Entry date is never after today (from the injected Clock).
    - At most one live opening entry per (item_code, entry_date).
    - A receipt's unit_cost and amount agree within 0.01 when both given;
      the missing one is derived when only one is given.
    - Reversal: at most one reversal per entry (UNIQUE reversal_of_id);
      a reversal cannot itself be reversed.

Failure modes:
    - ValidationError subclasses from append().
    - EntryNotFoundError, EntryAlreadyReversedError,
      CannotReverseReversalError from reverse().
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.entries import (
    BulkAppendResult,
    EntryKind,
    ItemLedger,
    OpeningStockEntry,
    ReceiptEntry,
    RejectedRow,
    ReversalResult,
    TransactionRecord,
)
from stock_kernel.exceptions import (
    CannotReverseReversalError,
    DuplicateOpeningStockError,
    EntryAlreadyReversedError,
    EntryNotFoundError,
    FutureDatedEntryError,
    InvalidCostError,
    MissingItemCodeError,
    NegativeQuantityError,
    ValidationError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.ledger import LEDGER_MODELS, OpeningStockEntryModel
from stock_kernel.selectors.ledger_selector import LedgerSelector, live_entry_condition
from stock_kernel.services.base import BaseService
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_store")

COST_TOLERANCE = Decimal("0.01")
_COST_PLACES = Decimal("0.000000001")


class LedgerStore(BaseService):
    """
    Append-only store for the three ledger streams.

    Contract:
        - ``append()`` validates one entry and returns its id.
        - ``append_many()`` isolates each row in a SAVEPOINT and reports
          per-row rejections instead of failing the whole batch.
        - ``query_by_item()`` returns entries ordered by (entry_date, seq).
        - ``reverse()`` appends a compensating entry.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._sequence = SequenceService(session)
        self._selector = LedgerSelector(session)

    # -------------------------------------------------------------------------
    # Append
    # -------------------------------------------------------------------------

    def append(self, entry: TransactionRecord, actor_id: UUID) -> UUID:
        """Validate and append one entry.

        Returns:
            The new entry's id.

        Raises:
            MissingItemCodeError, NegativeQuantityError, FutureDatedEntryError,
            InvalidCostError, DuplicateOpeningStockError.
        """
        entry = self._normalize(entry)
        self._validate(entry)
        entry = self._derive_cost(entry)

        if isinstance(entry, OpeningStockEntry):
            self._check_duplicate_opening(entry)

        model = self._insert(entry, actor_id)

        logger.info(
            "ledger_entry_appended",
            extra={
                "entry_id": str(model.id),
                "kind": entry.kind.value,
                "item_code": entry.item_code,
                "entry_date": entry.entry_date.isoformat(),
                "quantity": str(entry.quantity),
                "seq": model.seq,
            },
        )
        return model.id

    def append_many(
        self,
        entries: Iterable[TransactionRecord],
        actor_id: UUID,
    ) -> BulkAppendResult:
        """Append a batch of entries, one SAVEPOINT per row.

        A rejected row is reported and skipped; accepted rows stay in the
        caller's transaction.
        """
        accepted: list[UUID] = []
        rejected: list[RejectedRow] = []

        for index, entry in enumerate(entries):
            savepoint = self.session.begin_nested()
            try:
                entry_id = self.append(entry, actor_id)
            except ValidationError as exc:
                savepoint.rollback()
                rejected.append(
                    RejectedRow(
                        index=index,
                        item_code=getattr(entry, "item_code", None),
                        error_code=exc.code,
                        message=str(exc),
                    )
                )
                logger.warning(
                    "ledger_entry_rejected",
                    extra={
                        "row_index": index,
                        "item_code": getattr(entry, "item_code", None),
                        "error_code": exc.code,
                    },
                )
                continue
            savepoint.commit()
            accepted.append(entry_id)

        logger.info(
            "ledger_bulk_append_completed",
            extra={"accepted": len(accepted), "rejected": len(rejected)},
        )
        return BulkAppendResult(accepted=tuple(accepted), rejected=tuple(rejected))

    # -------------------------------------------------------------------------
    # Query
    # -------------------------------------------------------------------------

    def query_by_item(
        self,
        item_code: str,
        date_from: date | None = None,
        date_to: date | None = None,
        include_reversed: bool = False,
    ) -> tuple[TransactionRecord, ...]:
        """Entries for one item ordered by (entry_date, seq)."""
        return self._selector.entries_for_item(
            item_code,
            date_from=date_from,
            date_to=date_to,
            include_reversed=include_reversed,
        )

    def item_ledger(self, item_code: str) -> ItemLedger:
        """Live entries for one item from a single snapshot."""
        return self._selector.item_ledger(item_code)

    # -------------------------------------------------------------------------
    # Reverse
    # -------------------------------------------------------------------------

    def reverse(self, entry_id: UUID, reason: str, actor_id: UUID) -> ReversalResult:
        """Append a compensating entry that cancels ``entry_id``.

        The reversal row copies the original's item, date and quantity; both
        rows then drop out of every derived view.

        Raises:
            EntryNotFoundError: No entry with that id.
            CannotReverseReversalError: The entry is itself a reversal.
            EntryAlreadyReversedError: A reversal already exists.
        """
        original = self._find_entry(entry_id)
        if original is None:
            raise EntryNotFoundError(str(entry_id))

        if original.reversal_of_id is not None:
            raise CannotReverseReversalError(str(entry_id))

        model_cls = type(original)
        existing = self.session.execute(
            select(model_cls.id).where(model_cls.reversal_of_id == entry_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise EntryAlreadyReversedError(str(entry_id), str(existing))

        dto = replace(original.to_dto(), reversal_of_id=entry_id, reason=reason)

        savepoint = self.session.begin_nested()
        try:
            model = self._insert(dto, actor_id)
            savepoint.commit()
        except IntegrityError:
            # Concurrent reversal won the UNIQUE(reversal_of_id) race
            savepoint.rollback()
            raise EntryAlreadyReversedError(str(entry_id)) from None

        logger.info(
            "ledger_entry_reversed",
            extra={
                "entry_id": str(entry_id),
                "reversal_entry_id": str(model.id),
                "kind": original.kind.value,
                "item_code": original.item_code,
                "reason": reason,
            },
        )

        return ReversalResult(
            original_entry_id=entry_id,
            reversal_entry_id=model.id,
            kind=original.kind,
            item_code=original.item_code,
            entry_date=original.entry_date,
            quantity=original.quantity,
            reason=reason,
            reversed_by=actor_id,
            reversed_at=model.created_at,
        )

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _insert(self, dto: TransactionRecord, actor_id: UUID):
        seq = self._sequence.next_value(SequenceService.LEDGER_ENTRY)
        model = LEDGER_MODELS[dto.kind].from_dto(dto, seq=seq, created_by_id=actor_id)
        model.created_at = self._clock.now()
        self.session.add(model)
        self.session.flush()
        return model

    def _find_entry(self, entry_id: UUID):
        for model_cls in LEDGER_MODELS.values():
            found = self.session.get(model_cls, entry_id)
            if found is not None:
                return found
        return None

    @staticmethod
    def _normalize(entry: TransactionRecord) -> TransactionRecord:
        """Strip the item code and drop reversal fields."""
        item_code = (entry.item_code or "").strip()
        return replace(
            entry,
            item_code=item_code,
            entry_id=None,
            seq=None,
            reversal_of_id=None,
            reason=None,
        )

    @staticmethod
    def _derive_cost(entry: TransactionRecord) -> TransactionRecord:
        """Fill in whichever of unit cost or amount the receipt left out.

        Runs after validation so a derived, quantized unit cost is never
        checked against the amount it came from.
        """
        if not isinstance(entry, ReceiptEntry) or entry.quantity is None or entry.quantity <= 0:
            return entry

        if entry.unit_cost is None and entry.amount is not None:
            return replace(
                entry,
                unit_cost=(entry.amount / entry.quantity).quantize(_COST_PLACES),
            )
        if entry.amount is None and entry.unit_cost is not None:
            return replace(entry, amount=entry.quantity * entry.unit_cost)
        return entry

    def _validate(self, entry: TransactionRecord) -> None:
        kind = entry.kind.value

        if not entry.item_code:
            raise MissingItemCodeError(kind)

        if entry.quantity is None or entry.quantity < 0:
            raise NegativeQuantityError(entry.item_code, entry.quantity, kind)
        if entry.kind is not EntryKind.OPENING and entry.quantity == 0:
            raise NegativeQuantityError(entry.item_code, entry.quantity, kind)

        today = self._clock.today()
        if entry.entry_date > today:
            raise FutureDatedEntryError(entry.item_code, entry.entry_date, today)

        if isinstance(entry, ReceiptEntry):
            if entry.unit_cost is not None and entry.unit_cost < 0:
                raise InvalidCostError(entry.item_code, f"negative unit cost {entry.unit_cost}")
            if entry.amount is not None and entry.amount < 0:
                raise InvalidCostError(entry.item_code, f"negative amount {entry.amount}")
            if entry.unit_cost is not None and entry.amount is not None:
                expected = entry.quantity * entry.unit_cost
                if abs(expected - entry.amount) > COST_TOLERANCE:
                    raise InvalidCostError(
                        entry.item_code,
                        f"amount {entry.amount} != quantity x unit cost {expected}",
                    )

    def _check_duplicate_opening(self, entry: OpeningStockEntry) -> None:
        existing = self.session.execute(
            select(OpeningStockEntryModel.id).where(
                OpeningStockEntryModel.item_code == entry.item_code,
                OpeningStockEntryModel.entry_date == entry.entry_date,
                live_entry_condition(OpeningStockEntryModel),
            )
        ).scalars().first()
        if existing is not None:
            raise DuplicateOpeningStockError(entry.item_code, entry.entry_date, str(existing))

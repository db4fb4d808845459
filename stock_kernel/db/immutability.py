"""
ORM-Level Immutability Enforcement for the stock ledger.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  Listeners registered here intercept those events for every ledger
stream and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update] --> _block_ledger_update() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _block_ledger_delete() --> ImmutabilityViolationError

Corrections are made by appending a reversal entry (LedgerStore.reverse),
never by editing a row.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                  | When Immutable | Why
------------------------|----------------|-----------------------------------
OpeningStockEntryModel  | ALWAYS         | Opening balances anchor every view
ReceiptEntryModel       | ALWAYS         | Receipts carry the cost basis
IssueEntryModel         | ALWAYS         | Issues drive balance and velocity

Reorder suggestions, rules, the item master and classification records are
NOT protected: they are configuration or derived data.
"""

from sqlalchemy import event

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block_ledger_update(mapper, connection, target):
    """Prevent any UPDATE of a ledger row."""
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "item_code": target.item_code,
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger entries are append-only; append a reversal instead",
    )


def _block_ledger_delete(mapper, connection, target):
    """Prevent deletion of a ledger row."""
    entity_type = type(target).__name__
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "item_code": target.item_code,
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason="Ledger entries cannot be deleted",
    )


def _ledger_models():
    from stock_kernel.models.ledger import LEDGER_MODELS

    return tuple(LEDGER_MODELS.values())


def register_immutability_listeners():
    """
    Register ledger immutability listeners.

    Call during application initialization, after models are imported and
    before any database operations begin.  Safe to call more than once.
    """
    for model in _ledger_models():
        if not event.contains(model, "before_update", _block_ledger_update):
            event.listen(model, "before_update", _block_ledger_update)
        if not event.contains(model, "before_delete", _block_ledger_delete):
            event.listen(model, "before_delete", _block_ledger_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove ledger immutability listeners.

    WARNING: Only use this in tests that intentionally violate immutability.
    """
    for model in _ledger_models():
        _safe_remove_listener(model, "before_update", _block_ledger_update)
        _safe_remove_listener(model, "before_delete", _block_ledger_delete)

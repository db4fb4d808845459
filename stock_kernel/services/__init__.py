"""Kernel services: the ledger store and sequence allocation."""

from stock_kernel.services.ledger_store import LedgerStore
from stock_kernel.services.sequence_service import SequenceService

__all__ = ["LedgerStore", "SequenceService"]

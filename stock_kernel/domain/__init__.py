"""
Pure domain layer.

Data transfer objects with NO dependencies on the ORM, the database or I/O.
All domain objects are immutable.
"""

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
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.entries import (
    BulkAppendResult,
    EntryKind,
    IssueEntry,
    ItemLedger,
    OpeningStockEntry,
    ReceiptEntry,
    RejectedRow,
    ReversalResult,
    TransactionRecord,
)
from stock_kernel.domain.findings import DataIntegrityFinding, FindingCode, FindingSeverity
from stock_kernel.domain.item import ItemMaster
from stock_kernel.domain.reorder import (
    ReorderRule,
    ReorderSuggestion,
    ReorderUrgency,
    SuggestionStatus,
)

__all__ = [
    "AbcClass",
    "AgingAction",
    "AgingTrend",
    "BulkAppendResult",
    "ClassificationRecord",
    "Clock",
    "DataIntegrityFinding",
    "DeterministicClock",
    "EntryKind",
    "FindingCode",
    "FindingSeverity",
    "IssueEntry",
    "ItemLedger",
    "ItemMaster",
    "MovementClass",
    "MovementTrend",
    "OpeningStockEntry",
    "ReceiptEntry",
    "RejectedRow",
    "ReorderRule",
    "ReorderSuggestion",
    "ReorderUrgency",
    "ReversalResult",
    "RiskLevel",
    "StockRecommendation",
    "SuggestionStatus",
    "SystemClock",
    "TransactionRecord",
]

"""ORM models for the stock kernel."""

from stock_kernel.models.classification import ClassificationRecordModel
from stock_kernel.models.item import ItemMasterModel
from stock_kernel.models.ledger import (
    LEDGER_MODELS,
    IssueEntryModel,
    LedgerEntryBase,
    OpeningStockEntryModel,
    ReceiptEntryModel,
)
from stock_kernel.models.reorder import ReorderRuleModel, ReorderSuggestionModel

__all__ = [
    "ClassificationRecordModel",
    "IssueEntryModel",
    "ItemMasterModel",
    "LEDGER_MODELS",
    "LedgerEntryBase",
    "OpeningStockEntryModel",
    "ReceiptEntryModel",
    "ReorderRuleModel",
    "ReorderSuggestionModel",
    "import_all_models",
]


def import_all_models() -> None:
    """Import every ORM module so Base.metadata knows all tables.

    Includes the sequence counter and the batch tables, which live outside
    this package.
    """
    import stock_kernel.services.sequence_service  # noqa: F401
    import stock_batch.models.batch  # noqa: F401

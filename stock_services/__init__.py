"""
stock_services -- Stateful orchestration over the stock engines and kernel.

Every service takes a SQLAlchemy Session, an optional Clock and an optional
EngineConfig through its constructor.  Services never commit: the caller
owns the transaction boundary.
"""

from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService
from stock_services.classification_service import (
    ClassificationFilters,
    ClassificationReport,
    ClassificationService,
    ItemSnapshot,
)
from stock_services.integrity_service import IntegrityReport, IntegrityService
from stock_services.item_catalog import ItemCatalogService
from stock_services.optimization_service import (
    InventoryOptimizationService,
    OptimizationFilters,
    OptimizationReport,
)
from stock_services.reorder_service import ReorderCycleResult, ReorderService
from stock_services.valuation_service import (
    CatalogValuation,
    ValuationFilters,
    ValuationService,
    ValuationSummary,
)
from stock_services.worker_pool import CatalogWorkerPool, PoolResult

__all__ = [
    "BalanceService",
    "CatalogValuation",
    "CatalogWorkerPool",
    "ClassificationFilters",
    "ClassificationReport",
    "ClassificationService",
    "IntegrityReport",
    "IntegrityService",
    "InventoryOptimizationService",
    "ItemCatalogService",
    "ItemFailure",
    "ItemSnapshot",
    "OptimizationFilters",
    "OptimizationReport",
    "PoolResult",
    "ReorderCycleResult",
    "ReorderService",
    "ValuationFilters",
    "ValuationService",
    "ValuationSummary",
]

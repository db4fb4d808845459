"""
Module: stock_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    stock calculation engines.  Canonical import surface for
    stock_services and stock_batch.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain, stock_kernel.exceptions,
    stock_kernel.logging_config and stock_config.schema.
    MUST NOT import stock_services, stock_batch or SQLAlchemy.

Invariants enforced:
    - Purity: engines never read the wall clock.  "Today" is always an
      explicit ``as_of_date`` argument supplied by the calling service.
    - Decimal-only arithmetic for quantities and money.
    - Determinism: identical inputs always produce identical outputs and no
      state is carried between invocations.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``stock_engines.tracer``), emitting STOCK_ENGINE_TRACE debug records.
"""

from stock_engines.abc import (
    AbcClassSummary,
    AbcItem,
    classify_abc,
    rank_items,
    summarize_abc,
)
from stock_engines.aging import (
    AgingBracketSummary,
    AgingResult,
    StockAgingClassifier,
    summarize_aging,
)
from stock_engines.balance import BalanceCalculator, StockPosition, window_totals
from stock_engines.consumption import (
    ConsumptionAnalyzer,
    ConsumptionPattern,
    ConsumptionProfile,
    ConsumptionTrend,
    monthly_buckets,
)
from stock_engines.movement import MOVEMENT_ORDER, MovementClassifier, MovementResult
from stock_engines.optimization import (
    InventoryOptimizer,
    OptimizationAction,
    OptimizationMetrics,
    OptimizationPriority,
    OptimizationRecommendation,
    OptimizationSummary,
    rank_recommendations,
    summarize_optimization,
)
from stock_engines.reorder import ReorderDecision, ReorderEvaluator, validate_rule
from stock_engines.tracer import compute_input_fingerprint, traced_engine
from stock_engines.valuation import (
    CostMethod,
    FifoStrategy,
    LifoStrategy,
    StrategyRegistry,
    ValuationEngine,
    ValuationRecord,
    ValuationStrategy,
    WeightedAverageStrategy,
    costed_receipts,
    default_strategy_registry,
)

__all__ = [
    "AbcClassSummary",
    "AbcItem",
    "AgingBracketSummary",
    "AgingResult",
    "BalanceCalculator",
    "ConsumptionAnalyzer",
    "ConsumptionPattern",
    "ConsumptionProfile",
    "ConsumptionTrend",
    "CostMethod",
    "FifoStrategy",
    "InventoryOptimizer",
    "LifoStrategy",
    "MOVEMENT_ORDER",
    "MovementClassifier",
    "MovementResult",
    "OptimizationAction",
    "OptimizationMetrics",
    "OptimizationPriority",
    "OptimizationRecommendation",
    "OptimizationSummary",
    "ReorderDecision",
    "ReorderEvaluator",
    "StockAgingClassifier",
    "StockPosition",
    "StrategyRegistry",
    "ValuationEngine",
    "ValuationRecord",
    "ValuationStrategy",
    "WeightedAverageStrategy",
    "classify_abc",
    "compute_input_fingerprint",
    "costed_receipts",
    "default_strategy_registry",
    "monthly_buckets",
    "rank_items",
    "rank_recommendations",
    "summarize_abc",
    "summarize_aging",
    "summarize_optimization",
    "traced_engine",
    "validate_rule",
    "window_totals",
]

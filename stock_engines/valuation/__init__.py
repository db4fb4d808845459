"""
Valuation - unit-cost strategies and the pure valuation engine.
"""

from stock_engines.valuation.engine import ValuationEngine, ValuationRecord
from stock_engines.valuation.strategies import (
    CostMethod,
    FifoStrategy,
    LifoStrategy,
    StrategyRegistry,
    ValuationStrategy,
    WeightedAverageStrategy,
    costed_receipts,
    default_strategy_registry,
)

__all__ = [
    "CostMethod",
    "FifoStrategy",
    "LifoStrategy",
    "StrategyRegistry",
    "ValuationEngine",
    "ValuationRecord",
    "ValuationStrategy",
    "WeightedAverageStrategy",
    "costed_receipts",
    "default_strategy_registry",
]

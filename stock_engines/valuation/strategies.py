"""
Valuation strategies -- tagged unit-cost selection over receipt history.

Each strategy answers one question: given an item's live receipts, what unit
cost values the on-hand quantity?  Receipts without a cost basis are
ignored by every strategy.

FIFO and LIFO here are single-layer: FIFO prices the whole quantity at the
oldest costed receipt, LIFO at the newest.  A layered implementation that
consumes receipts until the on-hand quantity is exhausted can be registered
under the same CostMethod without changing callers.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Protocol, Sequence, runtime_checkable

from stock_kernel.domain.entries import ReceiptEntry
from stock_kernel.exceptions import UnknownCostMethodError


class CostMethod(str, Enum):
    """Cost valuation methods."""

    WEIGHTED_AVG = "weighted_avg"
    FIFO = "fifo"           # Oldest costed receipt
    LIFO = "lifo"           # Newest costed receipt

    @classmethod
    def parse(cls, value: "CostMethod | str") -> "CostMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnknownCostMethodError(str(value)) from None


def costed_receipts(receipts: Sequence[ReceiptEntry]) -> list[ReceiptEntry]:
    """Receipts with a known unit cost, ordered oldest first by (date, seq)."""
    return sorted(
        (r for r in receipts if r.effective_unit_cost is not None),
        key=lambda r: (r.entry_date, r.seq or 0),
    )


@runtime_checkable
class ValuationStrategy(Protocol):
    """Unit-cost selection for one CostMethod."""

    @property
    def method(self) -> CostMethod: ...

    def unit_cost(self, receipts: Sequence[ReceiptEntry]) -> Decimal | None:
        """Unit cost for the on-hand quantity, or None without a cost basis."""
        ...


class WeightedAverageStrategy:
    """sum(quantity x unit_cost) / sum(quantity) over costed receipts."""

    method = CostMethod.WEIGHTED_AVG

    def unit_cost(self, receipts: Sequence[ReceiptEntry]) -> Decimal | None:
        priced = costed_receipts(receipts)
        total_qty = sum((r.quantity for r in priced), Decimal("0"))
        if total_qty <= 0:
            return None
        total_cost = sum((r.quantity * r.effective_unit_cost for r in priced), Decimal("0"))
        return total_cost / total_qty


class FifoStrategy:
    """Unit cost of the oldest costed receipt."""

    method = CostMethod.FIFO

    def unit_cost(self, receipts: Sequence[ReceiptEntry]) -> Decimal | None:
        priced = costed_receipts(receipts)
        return priced[0].effective_unit_cost if priced else None


class LifoStrategy:
    """Unit cost of the newest costed receipt."""

    method = CostMethod.LIFO

    def unit_cost(self, receipts: Sequence[ReceiptEntry]) -> Decimal | None:
        priced = costed_receipts(receipts)
        return priced[-1].effective_unit_cost if priced else None


class StrategyRegistry:
    """Maps CostMethod to a ValuationStrategy.

    Contract:
        - ``register()`` replaces any strategy already bound to the method.
        - ``get()`` raises UnknownCostMethodError for unbound methods.
    """

    def __init__(self) -> None:
        self._strategies: dict[CostMethod, ValuationStrategy] = {}

    def register(self, strategy: ValuationStrategy) -> None:
        self._strategies[strategy.method] = strategy

    def get(self, method: CostMethod | str) -> ValuationStrategy:
        parsed = CostMethod.parse(method)
        try:
            return self._strategies[parsed]
        except KeyError:
            raise UnknownCostMethodError(parsed.value) from None

    def methods(self) -> tuple[CostMethod, ...]:
        return tuple(self._strategies)

    def __contains__(self, method: object) -> bool:
        return method in self._strategies


def default_strategy_registry() -> StrategyRegistry:
    """Registry with the weighted-average, FIFO and LIFO strategies."""
    registry = StrategyRegistry()
    registry.register(WeightedAverageStrategy())
    registry.register(FifoStrategy())
    registry.register(LifoStrategy())
    return registry

"""
Module: stock_engines.valuation.engine
Responsibility:
    Value an on-hand quantity under a selected CostMethod.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``total_value = quantity x unit_cost`` when quantity > 0, else 0, so
      total_value is never negative.
    - No costed receipt means unit_cost 0 flagged as a missing cost basis,
      never a silent legitimate zero.
    - ``stock_age_days = as_of_date - most recent receipt date``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from stock_engines.tracer import traced_engine
from stock_engines.valuation.strategies import (
    CostMethod,
    StrategyRegistry,
    default_strategy_registry,
)
from stock_kernel.domain.entries import ReceiptEntry
from stock_kernel.domain.findings import DataIntegrityFinding
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.valuation")

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValuationRecord:
    """Value of one item's quantity under one costing method."""

    item_code: str
    quantity: Decimal
    unit_cost: Decimal
    total_value: Decimal
    method: CostMethod
    stock_age_days: int | None = None
    last_receipt_date: date | None = None
    receipt_count: int = 0
    missing_cost_basis: bool = False
    findings: tuple[DataIntegrityFinding, ...] = ()


class ValuationEngine:
    """Pure valuation over a strategy registry."""

    def __init__(self, registry: StrategyRegistry | None = None):
        self._registry = registry or default_strategy_registry()

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    @traced_engine("valuation", "1.0", fingerprint_fields=("item_code", "quantity", "method", "as_of_date"))
    def valuate(
        self,
        item_code: str,
        quantity: Decimal,
        receipts: Sequence[ReceiptEntry],
        method: CostMethod | str,
        as_of_date: date,
    ) -> ValuationRecord:
        """Value ``quantity`` of ``item_code`` using its live receipts.

        Raises:
            UnknownCostMethodError: No strategy registered for ``method``.
        """
        strategy = self._registry.get(method)
        unit_cost = strategy.unit_cost(receipts)

        findings: list[DataIntegrityFinding] = []
        missing = unit_cost is None
        if missing:
            unit_cost = ZERO
            findings.append(DataIntegrityFinding.missing_cost_basis(item_code, quantity))
            logger.info(
                "missing_cost_basis",
                extra={"item_code": item_code, "method": strategy.method.value},
            )

        total_value = quantity * unit_cost if quantity > 0 else ZERO

        last_receipt = max((r.entry_date for r in receipts), default=None)
        stock_age_days = (as_of_date - last_receipt).days if last_receipt is not None else None

        return ValuationRecord(
            item_code=item_code,
            quantity=quantity,
            unit_cost=unit_cost,
            total_value=total_value,
            method=strategy.method,
            stock_age_days=stock_age_days,
            last_receipt_date=last_receipt,
            receipt_count=len(receipts),
            missing_cost_basis=missing,
            findings=tuple(findings),
        )

"""
stock_services.valuation_service -- Item and catalog valuation.

Responsibility:
    Value an item's on-hand quantity under a costing method, and value the
    whole catalog with ABC tiers, filters and a summary.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes BalanceService (quantity), LedgerSelector (receipts) and the
    pure ValuationEngine / classify_abc.

Invariants enforced:
    - Quantity defaults to the freshly derived current stock.
    - ABC tiers are computed over every successfully valued item BEFORE
      filters are applied, so a filter never changes an item's class.
    - Per-item failures in valuate_catalog are isolated and reported.

Failure modes:
    - UnknownCostMethodError for a method with no registered strategy.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_engines.abc import AbcItem, classify_abc
from stock_engines.balance import StockPosition
from stock_engines.valuation import CostMethod, ValuationEngine, ValuationRecord
from stock_kernel.domain.classification import AbcClass
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.entries import ItemLedger
from stock_kernel.domain.findings import DataIntegrityFinding
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService

logger = get_logger("services.valuation")

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValuationFilters:
    category: str | None = None
    abc_class: AbcClass | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None
    include_zero_stock: bool = True


@dataclass(frozen=True)
class ValuationSummary:
    total_value: Decimal
    total_items: int
    average_value: Decimal
    a_count: int
    b_count: int
    c_count: int
    missing_cost_basis_count: int


@dataclass(frozen=True)
class CatalogValuation:
    method: CostMethod
    records: tuple[ValuationRecord, ...]
    abc_classes: dict[str, AbcClass]
    categories: dict[str, str | None]
    summary: ValuationSummary
    failures: tuple[ItemFailure, ...] = ()

    @property
    def findings(self) -> tuple[DataIntegrityFinding, ...]:
        return tuple(f for r in self.records for f in r.findings)


class ValuationService:
    """Valuation of items and of the catalog."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        engine: ValuationEngine | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._engine = engine or ValuationEngine()
        self._selector = LedgerSelector(session)
        self._balance = BalanceService(session, self._clock, self._config)

    def valuate(
        self,
        item_code: str,
        method: CostMethod | str | None = None,
        quantity: Decimal | None = None,
    ) -> ValuationRecord:
        """Value ``quantity`` (default: current stock) of one item."""
        ledger = self._selector.item_ledger(item_code.strip())
        return self.valuate_ledger(ledger, method=method, quantity=quantity)

    def valuate_ledger(
        self,
        ledger: ItemLedger,
        method: CostMethod | str | None = None,
        quantity: Decimal | None = None,
        position: StockPosition | None = None,
    ) -> ValuationRecord:
        if quantity is None:
            position = position or self._balance.position_for(ledger)
            quantity = position.current_stock
        return self._engine.valuate(
            item_code=ledger.item_code,
            quantity=quantity,
            receipts=ledger.receipts,
            method=method or self._config.default_cost_method,
            as_of_date=self._clock.today(),
        )

    def valuate_catalog(
        self,
        method: CostMethod | str | None = None,
        filters: ValuationFilters | None = None,
    ) -> CatalogValuation:
        """Value every catalog item, tier it A/B/C, then apply filters."""
        filters = filters or ValuationFilters()
        cost_method = CostMethod.parse(method or self._config.default_cost_method)

        records: list[ValuationRecord] = []
        failures: list[ItemFailure] = []
        for item_code in self._selector.catalog_item_codes():
            try:
                records.append(self.valuate(item_code, method=cost_method))
            except Exception as exc:
                failures.append(ItemFailure.from_exception(item_code, exc))
                logger.warning(
                    "item_valuation_failed",
                    extra={"item_code": item_code, "error": str(exc)},
                )

        abc_classes = classify_abc(
            [AbcItem(r.item_code, r.total_value) for r in records],
            a_pct=self._config.abc_class_a_percent,
            b_pct=self._config.abc_class_b_percent,
        )
        categories = self._selector.item_categories()

        selected = [
            r for r in records
            if self._matches(r, filters, abc_classes, categories)
        ]
        summary = self._summarize(selected, abc_classes)

        logger.info(
            "catalog_valuated",
            extra={
                "method": cost_method.value,
                "item_count": len(records),
                "selected_count": len(selected),
                "failure_count": len(failures),
                "total_value": str(summary.total_value),
            },
        )
        return CatalogValuation(
            method=cost_method,
            records=tuple(selected),
            abc_classes=abc_classes,
            categories=categories,
            summary=summary,
            failures=tuple(failures),
        )

    @staticmethod
    def _matches(
        record: ValuationRecord,
        filters: ValuationFilters,
        abc_classes: dict[str, AbcClass],
        categories: dict[str, str | None],
    ) -> bool:
        if not filters.include_zero_stock and record.quantity <= 0:
            return False
        if filters.category is not None and categories.get(record.item_code) != filters.category:
            return False
        if filters.abc_class is not None and abc_classes.get(record.item_code) is not filters.abc_class:
            return False
        if filters.min_value is not None and record.total_value < filters.min_value:
            return False
        if filters.max_value is not None and record.total_value > filters.max_value:
            return False
        return True

    @staticmethod
    def _summarize(
        records: list[ValuationRecord],
        abc_classes: dict[str, AbcClass],
    ) -> ValuationSummary:
        total_value = sum((r.total_value for r in records), ZERO)
        classes = [abc_classes.get(r.item_code) for r in records]
        return ValuationSummary(
            total_value=total_value,
            total_items=len(records),
            average_value=total_value / len(records) if records else ZERO,
            a_count=classes.count(AbcClass.A),
            b_count=classes.count(AbcClass.B),
            c_count=classes.count(AbcClass.C),
            missing_cost_basis_count=sum(1 for r in records if r.missing_cost_basis),
        )

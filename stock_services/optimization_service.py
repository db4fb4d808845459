"""
stock_services.optimization_service -- Stock level optimization.

Responsibility:
    Feed each item's demand window, receipt rhythm and cost basis into the
    pure InventoryOptimizer and rank the recommendations for the catalog.

Architecture position:
    Services -- stateful orchestration over engines + kernel.  Read-only:
    nothing is persisted and no reorder suggestion is created.

Invariants enforced:
    - Demand and receipts come from the same live entries as the balance,
      bounded below by the opening the balance counts from.
    - The cost basis is the weighted-average unit cost; items without one
      fall back to ``default_unit_cost`` and are flagged as assumed.
    - One item's failure is reported and never aborts the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_engines.balance import window_totals
from stock_engines.optimization import (
    InventoryOptimizer,
    OptimizationPriority,
    OptimizationRecommendation,
    OptimizationSummary,
    rank_recommendations,
    summarize_optimization,
)
from stock_engines.valuation import CostMethod
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService
from stock_services.valuation_service import ValuationService

logger = get_logger("services.optimization")


@dataclass(frozen=True)
class OptimizationFilters:
    category: str | None = None
    priority: OptimizationPriority | None = None
    service_level_percent: Decimal | None = None


@dataclass(frozen=True)
class OptimizationReport:
    as_of_date: date
    recommendations: tuple[OptimizationRecommendation, ...]
    summary: OptimizationSummary
    failures: tuple[ItemFailure, ...] = ()


class InventoryOptimizationService:
    """Per-item and catalog-wide stock level recommendations."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._selector = LedgerSelector(session)
        self._balance = BalanceService(session, self._clock, self._config)
        self._valuation = ValuationService(session, self._clock, self._config)
        self._optimizer = InventoryOptimizer(self._config)

    def optimize_item(
        self,
        item_code: str,
        service_level_percent: Decimal | None = None,
        category: str | None = None,
    ) -> OptimizationRecommendation | None:
        """Recommendation for one item; None when it has neither demand nor stock."""
        today = self._clock.today()
        window_days = self._config.demand_window_days
        ledger = self._selector.item_ledger(item_code.strip())
        position = self._balance.position_for(ledger)

        issues, _ = window_totals(
            ledger, as_of_date=today, window_days=window_days, since=position.counted_from,
        )
        start = today - timedelta(days=window_days)
        if position.counted_from is not None and position.counted_from > start:
            start = position.counted_from
        receipt_dates = [r.entry_date for r in ledger.receipts if start <= r.entry_date <= today]

        valuation = self._valuation.valuate_ledger(
            ledger, method=CostMethod.WEIGHTED_AVG, position=position,
        )
        unit_cost = None if valuation.missing_cost_basis else valuation.unit_cost

        return self._optimizer.optimize(
            item_code=ledger.item_code,
            current_stock=position.current_stock,
            issues_in_window=issues,
            receipt_dates=receipt_dates,
            unit_cost=unit_cost,
            service_level_percent=service_level_percent,
            category=category,
        )

    def optimize_catalog(self, filters: OptimizationFilters | None = None) -> OptimizationReport:
        """Ranked recommendations for every catalog item matching ``filters``."""
        filters = filters or OptimizationFilters()
        codes = self._selector.catalog_item_codes()
        categories = self._selector.item_categories(codes)

        recommendations: list[OptimizationRecommendation] = []
        failures: list[ItemFailure] = []
        for code in codes:
            category = categories.get(code)
            if filters.category is not None and category != filters.category:
                continue
            try:
                recommendation = self.optimize_item(
                    code,
                    service_level_percent=filters.service_level_percent,
                    category=category,
                )
            except Exception as exc:
                failures.append(ItemFailure.from_exception(code, exc))
                logger.warning(
                    "optimization_item_failed",
                    extra={"item_code": code, "error": str(exc)},
                )
                continue
            if recommendation is None:
                continue
            if filters.priority is not None and recommendation.priority is not filters.priority:
                continue
            recommendations.append(recommendation)

        ranked = tuple(rank_recommendations(recommendations))
        summary = summarize_optimization(ranked)
        logger.info(
            "optimization_run_completed",
            extra={
                "recommendations": summary.total_recommendations,
                "high_priority": summary.high_priority_items,
                "potential_savings": str(summary.potential_savings),
                "failed": len(failures),
            },
        )
        return OptimizationReport(
            as_of_date=self._clock.today(),
            recommendations=ranked,
            summary=summary,
            failures=tuple(failures),
        )

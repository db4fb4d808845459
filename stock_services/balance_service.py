"""
stock_services.balance_service -- On-demand stock positions.

Responsibility:
    Read an item's live ledger in one statement and fold it into a
    StockPosition with BalanceCalculator.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

Invariants enforced:
    - Positions are never cached: every call re-derives from the ledger.
    - One consistent snapshot per item (LedgerSelector.item_ledger issues a
      single UNION ALL statement).
    - "Today" for the future-dated check comes from the injected Clock.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_engines.balance import BalanceCalculator, StockPosition
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.entries import ItemLedger
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("services.balance")


class BalanceService:
    """Current stock per item, recomputed on every call."""

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
        self._calculator = BalanceCalculator()

    def compute_balance(
        self,
        item_code: str,
        as_of_opening_date: date | None = None,
    ) -> StockPosition:
        """Position of ``item_code`` using the opening entry on or before the cutoff.

        The cutoff defaults to ``EngineConfig.opening_stock_date``; when that
        is unset too, the latest live opening entry is used.
        """
        ledger = self._selector.item_ledger(item_code.strip())
        return self.position_for(ledger, as_of_opening_date)

    def position_for(
        self,
        ledger: ItemLedger,
        as_of_opening_date: date | None = None,
    ) -> StockPosition:
        """Position from an already-read ledger snapshot."""
        cutoff = as_of_opening_date or self._config.opening_stock_date
        position = self._calculator.compute_position(
            ledger,
            as_of_opening_date=cutoff,
            as_of_date=self._clock.today(),
        )
        logger.debug(
            "stock_position_computed",
            extra={
                "item_code": ledger.item_code,
                "current_stock": str(position.current_stock),
                "finding_count": len(position.findings),
            },
        )
        return position

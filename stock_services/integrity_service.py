"""
stock_services.integrity_service -- Catalog-wide data-integrity report.

Responsibility:
    Walk the catalog and collect every DataIntegrityFinding: negative
    stock, future-dated entries, missing cost basis for stock on hand and
    receipts recorded without a cost.

Findings are reported, never raised.  An item that cannot be read at all
is listed as an ItemFailure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.findings import DataIntegrityFinding, FindingCode
from stock_kernel.logging_config import get_logger
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService
from stock_services.valuation_service import ValuationService

logger = get_logger("services.integrity")


@dataclass(frozen=True)
class IntegrityReport:
    as_of_date: date
    total_items: int
    items_with_stock: int
    items_without_stock: int
    negative_stock_items: tuple[str, ...]
    findings: tuple[DataIntegrityFinding, ...]
    failures: tuple[ItemFailure, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.findings and not self.failures

    def findings_for(self, code: FindingCode) -> tuple[DataIntegrityFinding, ...]:
        return tuple(f for f in self.findings if f.code is code)


class IntegrityService:

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._selector = LedgerSelector(session)
        self._balance = BalanceService(session, self._clock, self._config)
        self._valuation = ValuationService(session, self._clock, self._config)

    def run_check(self) -> IntegrityReport:
        findings: list[DataIntegrityFinding] = []
        failures: list[ItemFailure] = []
        negative: list[str] = []
        with_stock = 0
        without_stock = 0

        codes = self._selector.catalog_item_codes()
        for code in codes:
            try:
                ledger = self._selector.item_ledger(code)
                position = self._balance.position_for(ledger)
                findings.extend(position.findings)

                for receipt in ledger.receipts:
                    if not receipt.has_cost:
                        findings.append(
                            DataIntegrityFinding.receipt_without_cost(code, receipt.entry_id)
                        )

                if position.current_stock > 0:
                    with_stock += 1
                    valuation = self._valuation.valuate_ledger(ledger, position=position)
                    findings.extend(valuation.findings)
                else:
                    without_stock += 1
                if position.has_negative_stock:
                    negative.append(code)
            except Exception as exc:
                failures.append(ItemFailure.from_exception(code, exc))
                logger.warning(
                    "integrity_item_failed",
                    extra={"item_code": code, "error": str(exc)},
                )

        report = IntegrityReport(
            as_of_date=self._clock.today(),
            total_items=len(codes),
            items_with_stock=with_stock,
            items_without_stock=without_stock,
            negative_stock_items=tuple(negative),
            findings=tuple(findings),
            failures=tuple(failures),
        )
        logger.info(
            "integrity_check_completed",
            extra={
                "total_items": report.total_items,
                "finding_count": len(report.findings),
                "negative_stock_count": len(negative),
                "failure_count": len(failures),
            },
        )
        return report

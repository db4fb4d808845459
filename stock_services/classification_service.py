"""
stock_services.classification_service -- The classification arena.

Responsibility:
    Derive one ClassificationRecord per item (ABC tier, movement class,
    aging risk) from the live ledger, and keep the persisted arena of
    records keyed by item_code.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes BalanceService, ValuationService and the pure classifiers in
    stock_engines (classify_abc, MovementClassifier, StockAgingClassifier,
    ConsumptionAnalyzer).

Invariants enforced:
    - Records are derived, never authoritative: each refresh replaces an
      item's record wholesale, inside a SAVEPOINT, so readers see either
      the previous record or the new one.
    - Order independence: ABC ranks the run's snapshot values with a
      deterministic tie-break; no state is carried between runs.
    - One item's failure is reported as an ItemFailure and never aborts
      the run for the others.
    - Cancellation stops work on remaining items; records already
      replaced stay replaced.

Algorithm (classify_catalog):
    1. Snapshot every item: position, valuation, trailing-window totals
       (optionally in parallel through CatalogWorkerPool).
    2. Rank the snapshot values A/B/C.
    3. Build and replace each item's record.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_engines.abc import AbcItem, classify_abc
from stock_engines.aging import StockAgingClassifier
from stock_engines.balance import StockPosition, window_totals
from stock_engines.consumption import ConsumptionAnalyzer, ConsumptionProfile
from stock_engines.movement import MovementClassifier
from stock_engines.valuation import ValuationRecord
from stock_kernel.domain.classification import (
    AbcClass,
    ClassificationRecord,
    MovementClass,
    RiskLevel,
)
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.findings import DataIntegrityFinding
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.classification import ClassificationRecordModel
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService
from stock_services.valuation_service import ValuationService
from stock_services.worker_pool import CatalogWorkerPool

logger = get_logger("services.classification")


@dataclass(frozen=True)
class ItemSnapshot:
    """Everything the classifiers need about one item, read at one point."""

    item_code: str
    category: str | None
    as_of_date: date
    position: StockPosition
    valuation: ValuationRecord
    issues_in_window: Decimal
    receipts_in_window: Decimal
    last_receipt_date: date | None
    last_issue_date: date | None

    @property
    def findings(self) -> tuple[DataIntegrityFinding, ...]:
        return self.position.findings + self.valuation.findings


@dataclass(frozen=True)
class ClassificationFilters:
    abc_class: AbcClass | None = None
    movement_class: MovementClass | None = None
    risk_level: RiskLevel | None = None
    aging_bracket: str | None = None
    category: str | None = None
    min_value: Decimal | None = None
    max_value: Decimal | None = None


@dataclass(frozen=True)
class ClassificationReport:
    run_id: UUID
    records: tuple[ClassificationRecord, ...]
    failures: tuple[ItemFailure, ...]
    findings: tuple[DataIntegrityFinding, ...]
    cancelled: bool
    total_items: int

    @property
    def succeeded_count(self) -> int:
        return len(self.records)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class ClassificationService:
    """Derives and persists per-item classification records."""

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
        self._movement = MovementClassifier(self._config)
        self._aging = StockAgingClassifier(self._config)
        self._consumption = ConsumptionAnalyzer(self._config)

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def snapshot_item(self, item_code: str, category: str | None = None) -> ItemSnapshot:
        """Read one item's ledger once and derive its inputs."""
        today = self._clock.today()
        ledger = self._selector.item_ledger(item_code.strip())
        position = self._balance.position_for(ledger)
        valuation = self._valuation.valuate_ledger(ledger, position=position)
        issues, receipts = window_totals(
            ledger, as_of_date=today, window_days=self._config.movement_window_days,
            since=position.counted_from,
        )
        if category is None:
            category = self._selector.item_categories([ledger.item_code]).get(ledger.item_code)
        return ItemSnapshot(
            item_code=ledger.item_code,
            category=category,
            as_of_date=today,
            position=position,
            valuation=valuation,
            issues_in_window=issues,
            receipts_in_window=receipts,
            last_receipt_date=ledger.last_receipt_date,
            last_issue_date=ledger.last_issue_date,
        )

    def build_record(
        self,
        snapshot: ItemSnapshot,
        abc_class: AbcClass,
        run_id: UUID | None = None,
        computed_at: datetime | None = None,
    ) -> ClassificationRecord:
        movement = self._movement.classify(
            current_stock=snapshot.position.current_stock,
            issues_in_window=snapshot.issues_in_window,
            receipts_in_window=snapshot.receipts_in_window,
        )
        aging = self._aging.classify(
            last_receipt_date=snapshot.last_receipt_date,
            last_issue_date=snapshot.last_issue_date,
            as_of_date=snapshot.as_of_date,
            total_value=snapshot.valuation.total_value,
        )
        return ClassificationRecord(
            item_code=snapshot.item_code,
            category=snapshot.category,
            current_stock=snapshot.position.current_stock,
            total_value=snapshot.valuation.total_value,
            abc_class=abc_class,
            movement_class=movement.movement_class,
            velocity=movement.velocity,
            turnover_ratio=movement.turnover_ratio,
            movement_trend=movement.movement_trend,
            stock_recommendation=movement.stock_recommendation,
            issues_in_window=movement.issues_in_window,
            receipts_in_window=movement.receipts_in_window,
            days_since_last_transaction=aging.days_since_last_transaction,
            aging_bracket=aging.aging_bracket,
            risk_level=aging.risk_level,
            recommended_action=aging.recommended_action,
            valuation_impact=aging.valuation_impact,
            aging_trend=aging.aging_trend,
            run_id=run_id,
            computed_at=computed_at or self._clock.now(),
        )

    def classify_item(
        self,
        item_code: str,
        abc_class: AbcClass | None = None,
        run_id: UUID | None = None,
        persist: bool = True,
    ) -> ClassificationRecord:
        """Classify one item and (by default) replace its arena record.

        Without an explicit ``abc_class`` the whole catalog is valued to
        place the item in its tier.
        """
        snapshot = self.snapshot_item(item_code)
        if abc_class is None:
            catalog = self._valuation.valuate_catalog()
            abc_class = catalog.abc_classes.get(snapshot.item_code, AbcClass.C)
        record = self.build_record(snapshot, abc_class, run_id=run_id)
        if persist:
            self.replace_record(record)
        return record

    def classify_catalog(
        self,
        item_codes: list[str] | tuple[str, ...] | None = None,
        cancel_event: threading.Event | None = None,
        pool: CatalogWorkerPool | None = None,
        run_id: UUID | None = None,
    ) -> ClassificationReport:
        """Refresh the arena for ``item_codes`` (default: the whole catalog).

        ABC tiers rank only the items in this run.
        """
        run_id = run_id or uuid4()
        if item_codes is not None:
            codes = list(dict.fromkeys(c.strip() for c in item_codes if c and c.strip()))
        else:
            codes = list(self._selector.catalog_item_codes())

        with LogContext.bind(run_id=str(run_id)):
            logger.info("classification_run_started", extra={"item_count": len(codes)})

            snapshots, failures, cancelled = self._collect_snapshots(codes, cancel_event, pool)

            abc = classify_abc(
                [AbcItem(s.item_code, s.valuation.total_value) for s in snapshots.values()],
                a_pct=self._config.abc_class_a_percent,
                b_pct=self._config.abc_class_b_percent,
            )

            computed_at = self._clock.now()
            records: list[ClassificationRecord] = []
            for code in sorted(snapshots):
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                try:
                    record = self.build_record(
                        snapshots[code], abc[code], run_id=run_id, computed_at=computed_at,
                    )
                    self.replace_record(record)
                    records.append(record)
                except Exception as exc:
                    failures.append(ItemFailure.from_exception(code, exc))
                    logger.warning(
                        "item_classification_failed",
                        extra={"item_code": code, "error": str(exc)},
                    )

            findings = tuple(f for s in snapshots.values() for f in s.findings)
            report = ClassificationReport(
                run_id=run_id,
                records=tuple(records),
                failures=tuple(failures),
                findings=findings,
                cancelled=cancelled,
                total_items=len(codes),
            )
            logger.info(
                "classification_run_completed",
                extra={
                    "item_count": len(codes),
                    "succeeded": report.succeeded_count,
                    "failed": report.failed_count,
                    "finding_count": len(findings),
                    "cancelled": cancelled,
                },
            )
            return report

    def _collect_snapshots(
        self,
        codes: list[str],
        cancel_event: threading.Event | None,
        pool: CatalogWorkerPool | None,
    ) -> tuple[dict[str, ItemSnapshot], list[ItemFailure], bool]:
        categories = self._selector.item_categories(codes)

        if pool is not None:
            clock, config = self._clock, self._config

            def work(session: Session, code: str) -> ItemSnapshot:
                service = ClassificationService(session, clock, config)
                return service.snapshot_item(code, category=categories.get(code))

            result = pool.run(codes, work, cancel_event)
            return dict(result.results), list(result.failures), result.cancelled

        snapshots: dict[str, ItemSnapshot] = {}
        failures: list[ItemFailure] = []
        for code in codes:
            if cancel_event is not None and cancel_event.is_set():
                return snapshots, failures, True
            try:
                snapshots[code] = self.snapshot_item(code, category=categories.get(code))
            except Exception as exc:
                failures.append(ItemFailure.from_exception(code, exc))
                logger.warning(
                    "item_snapshot_failed",
                    extra={"item_code": code, "error": str(exc)},
                )
        return snapshots, failures, False

    def analyze_consumption(self, item_code: str, months: int | None = None) -> ConsumptionProfile:
        """Monthly consumption profile from the item's live issues."""
        ledger = self._selector.item_ledger(item_code.strip())
        return self._consumption.analyze(
            item_code=ledger.item_code,
            issues=ledger.issues,
            as_of_date=self._clock.today(),
            months=months,
        )

    # -------------------------------------------------------------------------
    # Arena
    # -------------------------------------------------------------------------

    def replace_record(self, record: ClassificationRecord) -> None:
        """Swap the item's arena record for ``record`` atomically."""
        savepoint = self._session.begin_nested()
        try:
            self._session.execute(
                delete(ClassificationRecordModel).where(
                    ClassificationRecordModel.item_code == record.item_code,
                )
            )
            self._session.add(ClassificationRecordModel.from_dto(record))
            self._session.flush()
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()

    def get_record(self, item_code: str) -> ClassificationRecord | None:
        model = self._session.execute(
            select(ClassificationRecordModel).where(
                ClassificationRecordModel.item_code == item_code.strip(),
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list_records(
        self,
        filters: ClassificationFilters | None = None,
    ) -> tuple[ClassificationRecord, ...]:
        """Persisted records, highest value first."""
        filters = filters or ClassificationFilters()
        m = ClassificationRecordModel
        stmt = select(m).order_by(m.total_value.desc(), m.item_code)
        if filters.abc_class is not None:
            stmt = stmt.where(m.abc_class == filters.abc_class.value)
        if filters.movement_class is not None:
            stmt = stmt.where(m.movement_class == filters.movement_class.value)
        if filters.risk_level is not None:
            stmt = stmt.where(m.risk_level == filters.risk_level.value)
        if filters.aging_bracket is not None:
            stmt = stmt.where(m.aging_bracket == filters.aging_bracket)
        if filters.category is not None:
            stmt = stmt.where(m.category == filters.category)
        if filters.min_value is not None:
            stmt = stmt.where(m.total_value >= filters.min_value)
        if filters.max_value is not None:
            stmt = stmt.where(m.total_value <= filters.max_value)
        return tuple(r.to_dto() for r in self._session.execute(stmt).scalars().all())

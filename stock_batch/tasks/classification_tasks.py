"""
Batch task: refresh the classification arena.

prepare_items snapshots every item once and ranks the snapshot values
A/B/C; each item then re-derives and replaces its own record in its own
SAVEPOINT.  An item whose snapshot failed is carried through as a FAILED
item so the job reports it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_batch.domain.types import BatchItemStatus
from stock_batch.tasks.base import BatchItemInput, BatchTaskResult
from stock_config.schema import EngineConfig
from stock_engines.abc import AbcItem, classify_abc
from stock_kernel.domain.classification import AbcClass
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.classification_service import ClassificationService


class ClassificationRefreshTask:
    """Re-derive one ClassificationRecord per catalog item."""

    def __init__(self, clock: Clock | None = None, config: EngineConfig | None = None):
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()

    @property
    def task_type(self) -> str:
        return "stock.classification_refresh"

    @property
    def description(self) -> str:
        return "Refresh ABC, movement and aging classification for the catalog"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        service = ClassificationService(session, self._clock, self._config)
        requested = parameters.get("item_codes") or LedgerSelector(session).catalog_item_codes()
        codes = list(dict.fromkeys(code.strip() for code in requested))
        run_id = str(uuid4())

        values: list[AbcItem] = []
        failed: dict[str, ItemFailure] = {}
        for code in codes:
            try:
                snapshot = service.snapshot_item(code)
            except Exception as exc:
                failed[code] = ItemFailure.from_exception(code, exc)
                continue
            values.append(AbcItem(snapshot.item_code, snapshot.valuation.total_value))

        abc = classify_abc(
            values,
            a_pct=self._config.abc_class_a_percent,
            b_pct=self._config.abc_class_b_percent,
        )

        items = []
        for i, code in enumerate(codes):
            if code in failed:
                payload = {
                    "item_code": code,
                    "error_code": failed[code].error_code,
                    "error_message": failed[code].message,
                }
            else:
                payload = {"item_code": code, "abc_class": abc[code].value, "run_id": run_id}
            items.append(BatchItemInput(item_index=i, item_key=code, payload=payload))
        return tuple(items)

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        if "error_code" in item.payload:
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code=item.payload["error_code"],
                error_message=item.payload.get("error_message"),
            )

        service = ClassificationService(session, self._clock, self._config)
        record = service.classify_item(
            item.payload["item_code"],
            abc_class=AbcClass(item.payload["abc_class"]),
            run_id=UUID(item.payload["run_id"]),
        )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "abc_class": record.abc_class.value,
                "movement_class": record.movement_class.value,
                "risk_level": record.risk_level.value,
                "total_value": str(record.total_value),
            },
        )

"""
Batch task: evaluate reorder rules.

One item per item code with an active rule.  Items above their reorder
level are SKIPPED; triggered items get a new PENDING suggestion tagged
with the job's cycle id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_batch.domain.types import BatchItemStatus
from stock_batch.tasks.base import BatchItemInput, BatchTaskResult
from stock_config.schema import EngineConfig
from stock_kernel.domain.clock import Clock, SystemClock
from stock_services.reorder_service import ReorderService


class ReorderEvaluationTask:
    """Create reorder suggestions for items at or below their level."""

    def __init__(self, clock: Clock | None = None, config: EngineConfig | None = None):
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()

    @property
    def task_type(self) -> str:
        return "stock.reorder_evaluation"

    @property
    def description(self) -> str:
        return "Evaluate active reorder rules and create purchase suggestions"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        service = ReorderService(session, self._clock, self._config)
        cycle_id = parameters.get("cycle_id") or str(uuid4())
        codes = sorted({rule.item_code for rule in service.list_rules()})
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=code,
                payload={"item_code": code, "cycle_id": cycle_id},
            )
            for i, code in enumerate(codes)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        service = ReorderService(session, self._clock, self._config)
        suggestion = service.evaluate(
            item.payload["item_code"],
            cycle_id=UUID(item.payload["cycle_id"]),
        )
        if suggestion is None:
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"reason": "above reorder level"},
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "suggestion_id": str(suggestion.suggestion_id),
                "urgency": suggestion.urgency.value,
                "suggested_quantity": str(suggestion.suggested_quantity),
            },
        )

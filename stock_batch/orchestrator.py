"""
BatchOrchestrator -- DI container for the stock refresh jobs.

Contract:
    Wires TaskRegistry with the stock task implementations, creates
    BatchExecutor, and optionally creates RefreshScheduler.  Single place
    where all batch dependencies are composed.

Invariants enforced:
    - Clock injection: the tasks, executor and scheduler share one Clock.
    - The same EngineConfig drives every task.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import get_logger
from stock_kernel.services.sequence_service import SequenceService

from stock_batch.domain.types import RefreshSchedule
from stock_batch.services.executor import BatchExecutor
from stock_batch.services.scheduler import RefreshScheduler
from stock_batch.tasks.base import TaskRegistry
from stock_batch.tasks.classification_tasks import ClassificationRefreshTask
from stock_batch.tasks.reorder_tasks import ReorderEvaluationTask

logger = get_logger("batch.orchestrator")


def default_task_registry(clock: Clock, config: EngineConfig) -> TaskRegistry:
    """Create a TaskRegistry pre-loaded with the stock refresh tasks."""
    registry = TaskRegistry()
    registry.register(ClassificationRefreshTask(clock, config))
    registry.register(ReorderEvaluationTask(clock, config))
    return registry


class BatchOrchestrator:
    """DI container for the stock batch system.

    Non-goals:
        - Does NOT start the scheduler automatically -- caller decides.
        - Does NOT manage session lifecycle -- caller controls commits.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        task_registry: TaskRegistry | None = None,
    ):
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._task_registry = task_registry or default_task_registry(self._clock, self._config)

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    def create_executor(self, session: Session) -> BatchExecutor:
        return BatchExecutor(
            session=session,
            task_registry=self._task_registry,
            clock=self._clock,
            sequence_service=SequenceService(session),
        )

    def default_schedules(self) -> tuple[RefreshSchedule, ...]:
        """Both refresh tasks at the configured interval."""
        interval = self._config.refresh_interval_seconds
        return (
            RefreshSchedule(
                job_name="Classification refresh",
                task_type="stock.classification_refresh",
                interval_seconds=interval,
            ),
            RefreshSchedule(
                job_name="Reorder evaluation",
                task_type="stock.reorder_evaluation",
                interval_seconds=interval,
            ),
        )

    def create_scheduler(
        self,
        session_factory: Callable[[], Session],
        schedules: tuple[RefreshSchedule, ...] | None = None,
        actor_id: UUID | None = None,
        tick_interval_seconds: int = 60,
    ) -> RefreshScheduler:
        scheduler = RefreshScheduler(
            session_factory=session_factory,
            executor_factory=self.create_executor,
            schedules=schedules if schedules is not None else self.default_schedules(),
            clock=self._clock,
            actor_id=actor_id or uuid4(),
            tick_interval_seconds=tick_interval_seconds,
        )
        logger.info(
            "scheduler_created",
            extra={"schedule_count": len(scheduler.schedules)},
        )
        return scheduler

"""
RefreshScheduler -- In-process fixed-interval scheduler.

Contract:
    Holds a set of RefreshSchedules, evaluates ``is_due()`` (pure) on each
    tick, and submits + executes due jobs via ``BatchExecutor``.

Architecture: stock_batch/services.  Uses stock_batch.domain.schedule for
    pure evaluation and stock_batch.services.executor for execution.

Invariants enforced:
    - All timestamps from the injected Clock.
    - Schedule evaluation is pure (is_due).
    - Graceful shutdown: ``stop()`` sets the cancel event handed to the
      running job, so it stops dispatching remaining items; items already
      committed stay committed.
    - Bounded staleness: each schedule fires at most once per interval.
    - ``_lock`` guards the schedule list only and is never held while a job
      runs; ``_tick_lock`` keeps ticks from overlapping.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Callable, Iterable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.logging_config import get_logger

from stock_batch.domain.schedule import is_due, next_run_at
from stock_batch.domain.types import BatchJobStatus, RefreshSchedule
from stock_batch.services.executor import BatchExecutor

logger = get_logger("batch.scheduler")


class RefreshScheduler:
    """In-process polling scheduler for refresh schedules.

    Contract:
        - ``tick()`` evaluates all schedules and fires due ones.
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler (no leader election).
        - Schedules are held in memory, not persisted.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        executor_factory: Callable[[Session], BatchExecutor],
        schedules: Iterable[RefreshSchedule] = (),
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        tick_interval_seconds: int = 60,
    ):
        self._session_factory = session_factory
        self._executor_factory = executor_factory
        self._schedules: list[RefreshSchedule] = list(schedules)
        self._clock = clock or SystemClock()
        self._actor_id = actor_id or uuid4()
        self._tick_interval = tick_interval_seconds
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def schedules(self) -> tuple[RefreshSchedule, ...]:
        with self._lock:
            return tuple(self._schedules)

    def add_schedule(self, schedule: RefreshSchedule) -> None:
        with self._lock:
            self._schedules.append(schedule)

    def tick(self) -> int:
        """Evaluate and fire due schedules (public for testing).

        Returns the number of schedules that were fired.
        """
        now = self._clock.now()
        fired = 0
        with self._tick_lock:
            with self._lock:
                due = [s for s in self._schedules if is_due(s, now)]

            for schedule in due:
                if self._stop_event.is_set():
                    break
                status = self._fire(schedule, now)
                with self._lock:
                    self._record_run(schedule, now, status)
                fired += 1
        return fired

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="stock-refresh-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background polling loop.  Exits when the stop event is set."""
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_exception")
            self._stop_event.wait(timeout=self._tick_interval)

    def _record_run(self, schedule: RefreshSchedule, now, status: BatchJobStatus) -> None:
        for index, current in enumerate(self._schedules):
            if current is schedule:
                self._schedules[index] = replace(
                    schedule, last_run_at=now, last_run_status=status,
                )
                return

    def _fire(self, schedule: RefreshSchedule, now) -> BatchJobStatus:
        session = self._session_factory()
        try:
            executor = self._executor_factory(session)
            job = executor.submit_job(
                job_name=schedule.job_name,
                task_type=schedule.task_type,
                idempotency_key=f"{schedule.task_type}-{now.strftime('%Y%m%dT%H%M%S%f')}",
                actor_id=self._actor_id,
                parameters=dict(schedule.parameters),
            )
            result = executor.execute_job(job.job_id, self._actor_id, self._stop_event)
            session.commit()
        except Exception:
            session.rollback()
            logger.exception(
                "schedule_fire_failed",
                extra={"job_name": schedule.job_name, "task_type": schedule.task_type},
            )
            return BatchJobStatus.FAILED
        finally:
            session.close()

        logger.info(
            "schedule_fired",
            extra={
                "job_name": schedule.job_name,
                "job_id": str(job.job_id),
                "status": result.status.value,
                "next_run_at": str(next_run_at(replace(schedule, last_run_at=now))),
            },
        )
        return result.status

"""
BatchExecutor -- SAVEPOINT-per-item batch execution engine.

Contract:
    Orchestrates batch job lifecycle: submit (with idempotency),
    execute (SAVEPOINT per item, cooperative cancellation), cancel, query.

Architecture: stock_batch/services.  Imports from stock_batch.domain,
    stock_batch.models, stock_batch.tasks, and kernel services.

Invariants enforced:
    - SAVEPOINT isolation per item (one failure doesn't abort the job).
    - Idempotency via UNIQUE idempotency_key.
    - Sequence monotonicity via SequenceService.
    - All timestamps from the injected Clock.
    - Concurrency guard (SELECT ... FOR UPDATE on the job row).
    - Cancellation stops dispatching: items not yet started are recorded
      as CANCELLED and items already committed stay committed.
"""

from __future__ import annotations

import threading
import time
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.exceptions import (
    BatchAlreadyRunningError,
    BatchIdempotencyError,
    BatchJobNotFoundError,
    TaskNotRegisteredError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.services.sequence_service import SequenceService

from stock_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJob,
    BatchJobStatus,
    BatchRunResult,
)
from stock_batch.models.batch import BatchItemModel, BatchJobModel
from stock_batch.tasks.base import BatchItemInput, TaskRegistry

logger = get_logger("batch.executor")


class BatchExecutor:
    """Batch execution engine with SAVEPOINT-per-item isolation.

    Contract:
        - ``submit_job()`` creates a PENDING job (idempotency check).
        - ``execute_job()`` runs the full batch with per-item SAVEPOINTs.
        - ``cancel_job()`` marks a PENDING/RUNNING job as CANCELLED.
        - ``get_job()`` / ``get_job_items()`` for queries.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT manage background threads -- that is the scheduler's job.
    """

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()
        self._sequence = sequence_service or SequenceService(session)

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    def submit_job(
        self,
        job_name: str,
        task_type: str,
        idempotency_key: str,
        actor_id: UUID,
        parameters: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> BatchJob:
        """Create a new PENDING batch job.

        Raises:
            TaskNotRegisteredError: If task_type is not in the registry.
            BatchIdempotencyError: If idempotency_key is already used.
        """
        if task_type not in self._task_registry:
            raise TaskNotRegisteredError(
                task_type, list(self._task_registry.list_tasks()),
            )

        existing = self._session.execute(
            select(BatchJobModel).where(
                BatchJobModel.idempotency_key == idempotency_key,
            )
        ).scalar_one_or_none()

        if existing is not None:
            raise BatchIdempotencyError(idempotency_key, str(existing.id))

        seq = self._sequence.next_value(SequenceService.BATCH_JOB)

        now = self._clock.now()
        job_id = uuid4()

        dto = BatchJob(
            job_id=job_id,
            job_name=job_name,
            task_type=task_type,
            status=BatchJobStatus.PENDING,
            idempotency_key=idempotency_key,
            parameters=parameters or {},
            created_at=now,
            created_by=actor_id,
            correlation_id=correlation_id,
            seq=seq,
        )

        model = BatchJobModel.from_dto(dto, created_by_id=actor_id)
        model.created_at = now
        self._session.add(model)
        self._session.flush()

        logger.info(
            "batch_job_submitted",
            extra={
                "job_id": str(job_id),
                "job_name": job_name,
                "task_type": task_type,
                "idempotency_key": idempotency_key,
                "seq": seq,
            },
        )

        return dto

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    def execute_job(
        self,
        job_id: UUID,
        actor_id: UUID,
        cancel_event: threading.Event | None = None,
    ) -> BatchRunResult:
        """Execute a batch job with SAVEPOINT-per-item isolation.

        Raises:
            BatchJobNotFoundError: If job_id does not exist.
            BatchAlreadyRunningError: If the job is not PENDING.
            TaskNotRegisteredError: If task_type is not registered.
        """
        start_time = time.monotonic()

        job_model = self._session.execute(
            select(BatchJobModel)
            .where(BatchJobModel.id == job_id)
            .with_for_update()
        ).scalar_one_or_none()

        if job_model is None:
            raise BatchJobNotFoundError(str(job_id))

        if job_model.status != BatchJobStatus.PENDING.value:
            raise BatchAlreadyRunningError(
                job_model.job_name, str(job_id), job_model.status,
            )

        task = self._task_registry.get(job_model.task_type)

        now = self._clock.now()
        job_model.status = BatchJobStatus.RUNNING.value
        job_model.started_at = now
        self._session.flush()

        with LogContext.bind(job_id=str(job_id)):
            logger.info(
                "batch_job_started",
                extra={"job_name": job_model.job_name, "task_type": job_model.task_type},
            )

            try:
                items = task.prepare_items(
                    parameters=job_model.parameters or {},
                    session=self._session,
                    as_of=now,
                )
            except Exception as exc:
                logger.exception("batch_prepare_failed")
                return self._fail_job(
                    job_model, f"prepare_items failed: {exc}", start_time,
                )

            job_model.total_items = len(items)
            self._session.flush()

            succeeded = 0
            failed = 0
            skipped = 0
            cancelled = 0
            item_results: list[BatchItemResult] = []

            for batch_item in items:
                if cancel_event is not None and cancel_event.is_set():
                    item_result = BatchItemResult(
                        item_index=batch_item.item_index,
                        item_key=batch_item.item_key,
                        status=BatchItemStatus.CANCELLED,
                    )
                    cancelled += 1
                else:
                    item_result = self._run_item(
                        task, batch_item, job_model.parameters or {}, now,
                    )
                    if item_result.status == BatchItemStatus.SUCCEEDED:
                        succeeded += 1
                    elif item_result.status == BatchItemStatus.SKIPPED:
                        skipped += 1
                    else:
                        failed += 1

                item_results.append(item_result)

                item_model = BatchItemModel.from_dto(
                    item_result, job_id=job_id, created_by_id=actor_id,
                )
                item_model.created_at = self._clock.now()
                self._session.add(item_model)

            job_model.succeeded_items = succeeded
            job_model.failed_items = failed
            job_model.skipped_items = skipped

            if cancelled:
                job_model.status = BatchJobStatus.CANCELLED.value
                job_model.error_summary = f"Cancelled with {cancelled} item(s) not run"
            elif failed == 0:
                job_model.status = BatchJobStatus.COMPLETED.value
            elif succeeded == 0 and skipped == 0:
                job_model.status = BatchJobStatus.FAILED.value
            else:
                job_model.status = BatchJobStatus.PARTIALLY_COMPLETED.value

            if failed > 0 and not cancelled:
                job_model.error_summary = f"{failed} item(s) failed"

            completed_at = self._clock.now()
            job_model.completed_at = completed_at
            total_duration = int((time.monotonic() - start_time) * 1000)
            self._session.flush()

            logger.info(
                "batch_job_finished",
                extra={
                    "status": job_model.status,
                    "total_items": len(items),
                    "succeeded": succeeded,
                    "failed": failed,
                    "skipped": skipped,
                    "cancelled": cancelled,
                    "duration_ms": total_duration,
                },
            )

        return BatchRunResult(
            job_id=job_id,
            status=BatchJobStatus(job_model.status),
            total_items=len(items),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            cancelled=cancelled,
            item_results=tuple(item_results),
            started_at=job_model.started_at,
            completed_at=completed_at,
            duration_ms=total_duration,
            correlation_id=job_model.correlation_id,
        )

    def _run_item(
        self,
        task,
        batch_item: BatchItemInput,
        parameters: dict[str, Any],
        as_of,
    ) -> BatchItemResult:
        item_start = time.monotonic()
        item_started_at = self._clock.now()

        savepoint = self._session.begin_nested()
        try:
            with LogContext.bind(item_code=batch_item.item_key):
                result = task.execute_item(
                    item=batch_item,
                    parameters=parameters,
                    session=self._session,
                    as_of=as_of,
                )
        except Exception as exc:
            savepoint.rollback()
            logger.warning(
                "batch_item_failed",
                extra={"item_key": batch_item.item_key, "error": str(exc)},
            )
            return BatchItemResult(
                item_index=batch_item.item_index,
                item_key=batch_item.item_key,
                status=BatchItemStatus.FAILED,
                error_code=getattr(exc, "code", None) or "UNHANDLED_EXCEPTION",
                error_message=str(exc),
                duration_ms=int((time.monotonic() - item_start) * 1000),
                started_at=item_started_at,
                completed_at=self._clock.now(),
            )

        if result.status == BatchItemStatus.SUCCEEDED:
            savepoint.commit()
        else:
            savepoint.rollback()

        return BatchItemResult(
            item_index=batch_item.item_index,
            item_key=batch_item.item_key,
            status=result.status,
            error_code=result.error_code,
            error_message=result.error_message,
            result_data=result.result_data,
            duration_ms=int((time.monotonic() - item_start) * 1000),
            started_at=item_started_at,
            completed_at=self._clock.now(),
        )

    # -------------------------------------------------------------------------
    # Cancel
    # -------------------------------------------------------------------------

    def cancel_job(
        self,
        job_id: UUID,
        reason: str,
        actor_id: UUID,
    ) -> BatchJob:
        """Cancel a PENDING job, or record cancellation of a RUNNING one.

        A running job stops dispatching through the cancel event passed to
        ``execute_job``; this method only updates the job row.

        Raises:
            BatchJobNotFoundError: If job_id does not exist.
        """
        job_model = self._session.execute(
            select(BatchJobModel)
            .where(BatchJobModel.id == job_id)
            .with_for_update()
        ).scalar_one_or_none()

        if job_model is None:
            raise BatchJobNotFoundError(str(job_id))

        if job_model.status not in (
            BatchJobStatus.PENDING.value,
            BatchJobStatus.RUNNING.value,
        ):
            raise ValueError(
                f"Cannot cancel job in status {job_model.status}"
            )

        job_model.status = BatchJobStatus.CANCELLED.value
        job_model.completed_at = self._clock.now()
        job_model.error_summary = f"Cancelled: {reason}"
        job_model.updated_by_id = actor_id
        self._session.flush()

        logger.info(
            "batch_job_cancelled",
            extra={"job_id": str(job_id), "reason": reason},
        )

        return job_model.to_dto()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_job(self, job_id: UUID) -> BatchJob:
        """Get a batch job by ID.

        Raises:
            BatchJobNotFoundError: If job_id does not exist.
        """
        model = self._session.get(BatchJobModel, job_id)
        if model is None:
            raise BatchJobNotFoundError(str(job_id))
        return model.to_dto()

    def get_job_items(self, job_id: UUID) -> tuple[BatchItemResult, ...]:
        """Get all item results for a batch job."""
        models = self._session.execute(
            select(BatchItemModel)
            .where(BatchItemModel.job_id == job_id)
            .order_by(BatchItemModel.item_index)
        ).scalars().all()

        return tuple(m.to_dto() for m in models)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _fail_job(
        self,
        job_model: BatchJobModel,
        error_summary: str,
        start_time: float,
    ) -> BatchRunResult:
        """Mark job as FAILED and return result."""
        job_model.status = BatchJobStatus.FAILED.value
        job_model.completed_at = self._clock.now()
        job_model.error_summary = error_summary
        self._session.flush()

        total_duration = int((time.monotonic() - start_time) * 1000)

        return BatchRunResult(
            job_id=job_model.id,
            status=BatchJobStatus.FAILED,
            total_items=0,
            succeeded=0,
            failed=0,
            skipped=0,
            started_at=job_model.started_at,
            completed_at=job_model.completed_at,
            duration_ms=total_duration,
            correlation_id=job_model.correlation_id,
        )

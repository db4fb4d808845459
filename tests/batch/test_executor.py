"""
Tests for stock_batch.services.executor.

Validates BatchExecutor: submit_job, execute_job (SAVEPOINT-per-item),
cancel_job, get_job, get_job_items, idempotency and cancellation.
"""

import threading
from datetime import datetime
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.exceptions import (
    BatchAlreadyRunningError,
    BatchIdempotencyError,
    BatchJobNotFoundError,
    TaskNotRegisteredError,
)
from stock_kernel.models.item import ItemMasterModel

from stock_batch.domain.types import BatchItemStatus, BatchJobStatus
from stock_batch.services.executor import BatchExecutor
from stock_batch.tasks.base import BatchItemInput, BatchTaskResult, TaskRegistry

from tests.conftest import TEST_ACTOR_ID


# =============================================================================
# Test tasks
# =============================================================================


def _items(count):
    return tuple(BatchItemInput(item_index=i, item_key=f"ITEM-{i:03d}") for i in range(count))


class SuccessTask:
    task_type = "test.success"
    description = "All items succeed"

    def prepare_items(self, parameters: dict[str, Any], session: Session, as_of: datetime):
        return _items(parameters.get("item_count", 3))

    def execute_item(self, item, parameters, session, as_of):
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED, result_data={"key": item.item_key})


class PartialFailTask:
    task_type = "test.partial_fail"
    description = "Even items fail"

    def prepare_items(self, parameters, session, as_of):
        return _items(3)

    def execute_item(self, item, parameters, session, as_of):
        if item.item_index % 2 == 0:
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code="EVEN_INDEX",
                error_message=f"{item.item_key} has an even index",
            )
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class RaisingTask:
    task_type = "test.raising"
    description = "Every item raises"

    def prepare_items(self, parameters, session, as_of):
        return _items(2)

    def execute_item(self, item, parameters, session, as_of):
        raise RuntimeError(f"boom {item.item_key}")


class SkipTask:
    task_type = "test.skip"
    description = "Nothing to do"

    def prepare_items(self, parameters, session, as_of):
        return _items(2)

    def execute_item(self, item, parameters, session, as_of):
        return BatchTaskResult(status=BatchItemStatus.SKIPPED)


class WritingTask:
    """Writes an item master row, then fails odd items after the write."""

    task_type = "test.writing"
    description = "Writes then maybe fails"

    def prepare_items(self, parameters, session, as_of):
        return _items(2)

    def execute_item(self, item, parameters, session, as_of):
        session.add(ItemMasterModel(item_code=item.item_key, created_by_id=TEST_ACTOR_ID))
        session.flush()
        if item.item_index == 1:
            raise RuntimeError("after write")
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class CancellingTask:
    """Sets the shared cancel event while running the first item."""

    task_type = "test.cancelling"
    description = "Cancels itself"

    def __init__(self, cancel_event: threading.Event):
        self._cancel = cancel_event

    def prepare_items(self, parameters, session, as_of):
        return _items(3)

    def execute_item(self, item, parameters, session, as_of):
        self._cancel.set()
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED)


class BrokenPrepareTask:
    task_type = "test.broken_prepare"
    description = "prepare_items raises"

    def prepare_items(self, parameters, session, as_of):
        raise RuntimeError("cannot read catalog")

    def execute_item(self, item, parameters, session, as_of):
        raise AssertionError("never called")


@pytest.fixture
def cancel_event():
    return threading.Event()


@pytest.fixture
def registry(cancel_event):
    registry = TaskRegistry()
    for task in (
        SuccessTask(),
        PartialFailTask(),
        RaisingTask(),
        SkipTask(),
        WritingTask(),
        CancellingTask(cancel_event),
        BrokenPrepareTask(),
    ):
        registry.register(task)
    return registry


@pytest.fixture
def executor(session, registry, clock):
    return BatchExecutor(session, registry, clock)


def _submit(executor, task_type, key=None, **parameters):
    return executor.submit_job(
        job_name=f"job {task_type}",
        task_type=task_type,
        idempotency_key=key or f"key-{uuid4()}",
        actor_id=TEST_ACTOR_ID,
        parameters=parameters,
    )


# =============================================================================
# Submit
# =============================================================================


class TestSubmit:

    def test_creates_pending_job(self, executor):
        job = _submit(executor, "test.success", item_count=2)

        stored = executor.get_job(job.job_id)
        assert stored.status is BatchJobStatus.PENDING
        assert stored.parameters == {"item_count": 2}
        assert stored.seq == job.seq

    def test_sequence_is_monotonic(self, executor):
        first = _submit(executor, "test.success")
        second = _submit(executor, "test.success")

        assert second.seq > first.seq

    def test_idempotency_key_reuse_rejected(self, executor):
        _submit(executor, "test.success", key="nightly-2024-02-20")

        with pytest.raises(BatchIdempotencyError):
            _submit(executor, "test.success", key="nightly-2024-02-20")

    def test_unregistered_task(self, executor):
        with pytest.raises(TaskNotRegisteredError):
            _submit(executor, "test.unknown")


# =============================================================================
# Execute
# =============================================================================


class TestExecute:

    def test_all_succeed(self, executor):
        job = _submit(executor, "test.success", item_count=4)

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.COMPLETED
        assert (result.total_items, result.succeeded, result.failed) == (4, 4, 0)
        assert executor.get_job(job.job_id).status is BatchJobStatus.COMPLETED

    def test_partial_failure(self, executor):
        job = _submit(executor, "test.partial_fail")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.PARTIALLY_COMPLETED
        assert (result.succeeded, result.failed) == (1, 2)
        assert executor.get_job(job.job_id).error_summary == "2 item(s) failed"

    def test_exceptions_become_failed_items(self, executor):
        job = _submit(executor, "test.raising")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.FAILED
        assert {r.error_code for r in result.item_results} == {"UNHANDLED_EXCEPTION"}

    def test_all_skipped_is_completed(self, executor):
        job = _submit(executor, "test.skip")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.COMPLETED
        assert result.skipped == 2

    def test_failed_item_rolled_back(self, executor, session):
        job = _submit(executor, "test.writing")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.PARTIALLY_COMPLETED
        codes = session.execute(select(ItemMasterModel.item_code)).scalars().all()
        assert codes == ["ITEM-000"]

    def test_cancel_event_stops_dispatch(self, executor, cancel_event):
        job = _submit(executor, "test.cancelling")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID, cancel_event=cancel_event)

        assert result.status is BatchJobStatus.CANCELLED
        assert result.succeeded == 1
        assert result.cancelled == 2
        statuses = [i.status for i in executor.get_job_items(job.job_id)]
        assert statuses == [
            BatchItemStatus.SUCCEEDED,
            BatchItemStatus.CANCELLED,
            BatchItemStatus.CANCELLED,
        ]

    def test_prepare_failure_fails_job(self, executor):
        job = _submit(executor, "test.broken_prepare")

        result = executor.execute_job(job.job_id, TEST_ACTOR_ID)

        assert result.status is BatchJobStatus.FAILED
        assert "cannot read catalog" in executor.get_job(job.job_id).error_summary

    def test_cannot_run_twice(self, executor):
        job = _submit(executor, "test.success")
        executor.execute_job(job.job_id, TEST_ACTOR_ID)

        with pytest.raises(BatchAlreadyRunningError):
            executor.execute_job(job.job_id, TEST_ACTOR_ID)

    def test_unknown_job(self, executor):
        with pytest.raises(BatchJobNotFoundError):
            executor.execute_job(uuid4(), TEST_ACTOR_ID)

    def test_item_results_persisted_in_order(self, executor):
        job = _submit(executor, "test.partial_fail")
        executor.execute_job(job.job_id, TEST_ACTOR_ID)

        items = executor.get_job_items(job.job_id)

        assert [i.item_key for i in items] == ["ITEM-000", "ITEM-001", "ITEM-002"]
        assert items[0].error_code == "EVEN_INDEX"
        assert items[1].status is BatchItemStatus.SUCCEEDED

    def test_job_id_in_log_context(self, executor, captured_logs):
        job = _submit(executor, "test.success", item_count=1)

        executor.execute_job(job.job_id, TEST_ACTOR_ID)

        finished = next(r for r in captured_logs() if r["message"] == "batch_job_finished")
        assert finished["job_id"] == str(job.job_id)
        assert finished["status"] == "completed"


# =============================================================================
# Cancel
# =============================================================================


class TestCancel:

    def test_cancel_pending(self, executor):
        job = _submit(executor, "test.success")

        cancelled = executor.cancel_job(job.job_id, "operator request", TEST_ACTOR_ID)

        assert cancelled.status is BatchJobStatus.CANCELLED
        assert cancelled.error_summary == "Cancelled: operator request"
        with pytest.raises(BatchAlreadyRunningError):
            executor.execute_job(job.job_id, TEST_ACTOR_ID)

    def test_cannot_cancel_finished(self, executor):
        job = _submit(executor, "test.success")
        executor.execute_job(job.job_id, TEST_ACTOR_ID)

        with pytest.raises(ValueError):
            executor.cancel_job(job.job_id, "too late", TEST_ACTOR_ID)

    def test_cancel_unknown(self, executor):
        with pytest.raises(BatchJobNotFoundError):
            executor.cancel_job(uuid4(), "nothing", TEST_ACTOR_ID)

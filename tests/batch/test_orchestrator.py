"""
Tests for BatchOrchestrator wiring and the stock refresh tasks run end to
end through the executor.
"""

from decimal import Decimal

import pytest

from stock_config import EngineConfig
from stock_kernel.domain.classification import AbcClass, MovementClass
from stock_kernel.domain.reorder import ReorderRule, ReorderUrgency
from stock_services import ClassificationService, ReorderService

from stock_batch.domain.types import BatchItemStatus, BatchJobStatus
from stock_batch.orchestrator import BatchOrchestrator, default_task_registry
from stock_batch.services.executor import BatchExecutor
from stock_batch.services.scheduler import RefreshScheduler
from stock_batch.tasks import BatchTask, ClassificationRefreshTask, ReorderEvaluationTask

from tests.conftest import TEST_ACTOR_ID
from tests.services.conftest import seed_catalog


@pytest.fixture
def orchestrator(clock):
    return BatchOrchestrator(clock=clock, config=EngineConfig(refresh_interval_seconds=900))


def _run(orchestrator, session, task_type, **parameters):
    executor = orchestrator.create_executor(session)
    job = executor.submit_job(
        job_name=task_type,
        task_type=task_type,
        idempotency_key=f"{task_type}-{len(parameters)}",
        actor_id=TEST_ACTOR_ID,
        parameters=parameters,
    )
    return executor, executor.execute_job(job.job_id, TEST_ACTOR_ID)


class TestWiring:

    def test_default_registry(self, clock, config):
        registry = default_task_registry(clock, config)

        assert registry.list_tasks() == ("stock.classification_refresh", "stock.reorder_evaluation")
        assert all(isinstance(registry.get(t), BatchTask) for t in registry.list_tasks())

    def test_duplicate_registration_rejected(self, clock, config):
        registry = default_task_registry(clock, config)

        with pytest.raises(ValueError):
            registry.register(ReorderEvaluationTask(clock, config))

    def test_create_executor(self, orchestrator, session):
        assert isinstance(orchestrator.create_executor(session), BatchExecutor)

    def test_default_schedules_use_configured_interval(self, orchestrator):
        schedules = orchestrator.default_schedules()

        assert [s.task_type for s in schedules] == [
            "stock.classification_refresh",
            "stock.reorder_evaluation",
        ]
        assert {s.interval_seconds for s in schedules} == {900}

    def test_create_scheduler(self, orchestrator, session_factory):
        scheduler = orchestrator.create_scheduler(session_factory)

        assert isinstance(scheduler, RefreshScheduler)
        assert len(scheduler.schedules) == 2
        assert not scheduler.is_running


class TestClassificationRefreshTask:

    def test_refreshes_whole_catalog(self, orchestrator, session, clock):
        seed_catalog(session, clock)

        _, result = _run(orchestrator, session, "stock.classification_refresh")

        assert result.status is BatchJobStatus.COMPLETED
        assert result.succeeded == 5
        records = ClassificationService(session, clock).list_records()
        assert {r.item_code: r.abc_class for r in records} == {
            "V": AbcClass.B,
            "W": AbcClass.C,
            "X": AbcClass.A,
            "Y": AbcClass.A,
            "Z": AbcClass.C,
        }
        assert len({r.run_id for r in records}) == 1

    def test_item_codes_parameter(self, orchestrator, session, clock):
        seed_catalog(session, clock)

        executor, result = _run(
            orchestrator, session, "stock.classification_refresh", item_codes=["X", "V"],
        )

        assert result.total_items == 2
        items = executor.get_job_items(result.job_id)
        assert [i.item_key for i in items] == ["X", "V"]
        assert items[0].result_data["movement_class"] == MovementClass.SLOW_MOVING.value
        assert items[0].result_data["abc_class"] == "A"

    def test_task_metadata(self, clock, config):
        task = ClassificationRefreshTask(clock, config)

        assert task.task_type == "stock.classification_refresh"
        assert task.description


class TestReorderEvaluationTask:

    def test_triggered_and_skipped_items(self, orchestrator, session, clock):
        seed_catalog(session, clock)
        reorder = ReorderService(session, clock)
        reorder.create_rule(
            ReorderRule("X", reorder_level=Decimal("150"), reorder_quantity=Decimal("100")),
            TEST_ACTOR_ID,
        )
        reorder.create_rule(
            ReorderRule("Y", reorder_level=Decimal("1"), reorder_quantity=Decimal("5")),
            TEST_ACTOR_ID,
        )

        executor, result = _run(orchestrator, session, "stock.reorder_evaluation")

        assert result.status is BatchJobStatus.COMPLETED
        assert (result.succeeded, result.skipped) == (1, 1)
        statuses = {i.item_key: i.status for i in executor.get_job_items(result.job_id)}
        assert statuses == {"X": BatchItemStatus.SUCCEEDED, "Y": BatchItemStatus.SKIPPED}
        suggestions = reorder.list_suggestions()
        assert [s.item_code for s in suggestions] == ["X"]
        assert suggestions[0].urgency is ReorderUrgency.LOW
        assert suggestions[0].cycle_id is not None

    def test_no_rules_no_items(self, orchestrator, session, clock):
        seed_catalog(session, clock)

        _, result = _run(orchestrator, session, "stock.reorder_evaluation")

        assert result.total_items == 0
        assert result.status is BatchJobStatus.COMPLETED

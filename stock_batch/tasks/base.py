"""
BatchTask protocol, supporting types, and TaskRegistry.

Contract:
    ``BatchTask`` defines the interface every batch task must implement.
    ``TaskRegistry`` stores registered tasks keyed by ``task_type``.

Architecture:
    stock_batch/tasks.  base.py imports only stock_batch.domain, the kernel
    exceptions and SQLAlchemy's Session type.

Invariants enforced:
    - One task per ``task_type`` string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from stock_batch.domain.types import BatchItemStatus
from stock_kernel.exceptions import TaskNotRegisteredError


# =============================================================================
# Supporting DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchItemInput:
    """Input description of a single batch item.

    Created by ``BatchTask.prepare_items()``.
    """

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """Result returned by ``BatchTask.execute_item()``."""

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


# =============================================================================
# BatchTask Protocol
# =============================================================================


@runtime_checkable
class BatchTask(Protocol):
    """Protocol defining the interface for batch task implementations.

    Contract:
        - ``task_type``: unique string key registered in TaskRegistry.
        - ``description``: human-readable label for logs.
        - ``prepare_items()``: reads eligible items, returns an immutable tuple.
        - ``execute_item()``: processes ONE item within a SAVEPOINT.

    Non-goals:
        - Does NOT manage transactions -- the executor owns SAVEPOINT lifecycle.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        """Read eligible items for this batch run.

        Args:
            parameters: Job-level parameters from BatchJob.parameters.
            session: Database session for reading.
            as_of: Clock-injected timestamp of the run.
        """
        ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        """Execute a single batch item within a SAVEPOINT."""
        ...


# =============================================================================
# TaskRegistry
# =============================================================================


class TaskRegistry:
    """Registry mapping task_type strings to BatchTask implementations."""

    def __init__(self) -> None:
        self._tasks: dict[str, BatchTask] = {}

    def register(self, task: BatchTask) -> None:
        """Register a batch task implementation.

        Raises:
            ValueError: If a task with the same task_type is already registered.
        """
        if task.task_type in self._tasks:
            raise ValueError(
                f"Task type '{task.task_type}' is already registered"
            )
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> BatchTask:
        """Retrieve a registered task by task_type.

        Raises:
            TaskNotRegisteredError: If no task is registered for task_type.
        """
        try:
            return self._tasks[task_type]
        except KeyError:
            raise TaskNotRegisteredError(task_type, list(self.list_tasks())) from None

    def list_tasks(self) -> tuple[str, ...]:
        """Return all registered task_type strings, sorted."""
        return tuple(sorted(self._tasks.keys()))

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks

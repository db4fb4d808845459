"""
stock_batch.domain.types -- Pure frozen dataclasses for the batch system.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class BatchJobStatus(str, Enum):
    """Job-level lifecycle status."""

    PENDING = "pending"  # Created, not yet started
    RUNNING = "running"  # Execution in progress
    COMPLETED = "completed"  # All items processed successfully
    FAILED = "failed"  # Job-level failure (no items succeeded)
    CANCELLED = "cancelled"  # Cancelled before or during execution
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed


class BatchItemStatus(str, Enum):
    """Per-item status within a batch job."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Nothing to do (e.g. item above its reorder level)
    CANCELLED = "cancelled"  # Not dispatched because the job was cancelled


# =============================================================================
# Job DTOs
# =============================================================================


@dataclass(frozen=True)
class BatchJob:
    """Immutable snapshot of a batch job.

    ``idempotency_key`` is UNIQUE: re-submitting the same key is rejected.
    ``seq`` is allocated via SequenceService for monotonic ordering.
    """

    job_id: UUID
    job_name: str  # Human-readable label (e.g., "Nightly classification 2024-02-20")
    task_type: str  # Registered task key (e.g., "stock.classification_refresh")
    status: BatchJobStatus
    idempotency_key: str
    parameters: dict[str, Any] = field(default_factory=dict)
    total_items: int = 0
    succeeded_items: int = 0
    failed_items: int = 0
    skipped_items: int = 0
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_by: UUID | None = None
    correlation_id: str | None = None
    error_summary: str | None = None
    seq: int | None = None


@dataclass(frozen=True)
class BatchItemResult:
    """Immutable result of processing a single batch item."""

    item_index: int  # 0-indexed position in the batch
    item_key: str  # Business identifier (the item code)
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class BatchRunResult:
    """Immutable result of executing a complete batch job.

    Returned by ``BatchExecutor.execute_job()``.
    """

    job_id: UUID
    status: BatchJobStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    cancelled: int = 0
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    correlation_id: str | None = None


# =============================================================================
# Schedule DTOs
# =============================================================================


@dataclass(frozen=True)
class RefreshSchedule:
    """A task re-run at a fixed interval by RefreshScheduler."""

    job_name: str
    task_type: str
    interval_seconds: int
    parameters: dict[str, Any] = field(default_factory=dict)
    last_run_at: datetime | None = None
    last_run_status: BatchJobStatus | None = None
    is_active: bool = True

    def __post_init__(self):
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

"""
stock_batch.domain -- Pure types for batch processing.

ZERO I/O.  All types are frozen dataclasses.
"""

from stock_batch.domain.schedule import is_due, next_run_at
from stock_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJob,
    BatchJobStatus,
    BatchRunResult,
    RefreshSchedule,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchJob",
    "BatchJobStatus",
    "BatchRunResult",
    "RefreshSchedule",
    "is_due",
    "next_run_at",
]

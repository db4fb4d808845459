"""
stock_batch.tasks -- Task protocol, registry, and the stock refresh tasks.
"""

from stock_batch.tasks.base import (
    BatchItemInput,
    BatchTask,
    BatchTaskResult,
    TaskRegistry,
)
from stock_batch.tasks.classification_tasks import ClassificationRefreshTask
from stock_batch.tasks.reorder_tasks import ReorderEvaluationTask

__all__ = [
    "BatchItemInput",
    "BatchTask",
    "BatchTaskResult",
    "ClassificationRefreshTask",
    "ReorderEvaluationTask",
    "TaskRegistry",
]

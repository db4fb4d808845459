"""stock_batch.services -- Batch executor and refresh scheduler."""

from stock_batch.services.executor import BatchExecutor
from stock_batch.services.scheduler import RefreshScheduler

__all__ = ["BatchExecutor", "RefreshScheduler"]

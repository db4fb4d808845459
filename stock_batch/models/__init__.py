"""
stock_batch.models -- ORM models for batch processing persistence.

Imports from stock_kernel.db.base only.
"""

from stock_batch.models.batch import BatchItemModel, BatchJobModel

__all__ = [
    "BatchItemModel",
    "BatchJobModel",
]

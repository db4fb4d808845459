"""
ORM models for batch processing persistence.

Contract:
    BatchJobModel and BatchItemModel persist batch job state and per-item
    results.  Each has ``to_dto()`` / ``from_dto()`` round-trip methods.

Architecture: stock_batch/models.  Imports from stock_kernel.db.base only.

Invariants enforced:
    - ``idempotency_key`` is UNIQUE on BatchJobModel.
    - ``seq`` allocated via SequenceService (not set by ORM).
    - JSON columns use the generic SQLAlchemy type so the tables work on
      PostgreSQL and SQLite alike.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from stock_batch.domain.types import BatchItemResult, BatchJob


class BatchJobModel(TrackedBase):
    """Persistent batch job record."""

    __tablename__ = "stock_batch_jobs"

    __table_args__ = (
        Index("ix_stock_batch_jobs_status", "status"),
        Index("ix_stock_batch_jobs_task_type", "task_type"),
    )

    job_name: Mapped[str] = mapped_column(String(200), nullable=False)
    task_type: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(
        String(200), nullable=False, unique=True,
    )
    parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    succeeded_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    seq: Mapped[int | None] = mapped_column(nullable=True, unique=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    correlation_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["BatchItemModel"]] = relationship(
        "BatchItemModel",
        back_populates="job",
        foreign_keys="BatchItemModel.job_id",
    )

    def to_dto(self) -> BatchJob:
        from stock_batch.domain.types import BatchJob, BatchJobStatus

        return BatchJob(
            job_id=self.id,
            job_name=self.job_name,
            task_type=self.task_type,
            status=BatchJobStatus(self.status),
            idempotency_key=self.idempotency_key,
            parameters=self.parameters or {},
            total_items=self.total_items,
            succeeded_items=self.succeeded_items,
            failed_items=self.failed_items,
            skipped_items=self.skipped_items,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            created_by=self.created_by_id,
            correlation_id=self.correlation_id,
            error_summary=self.error_summary,
            seq=self.seq,
        )

    @classmethod
    def from_dto(cls, dto: BatchJob, created_by_id: UUID) -> BatchJobModel:
        return cls(
            id=dto.job_id,
            job_name=dto.job_name,
            task_type=dto.task_type,
            status=dto.status.value,
            idempotency_key=dto.idempotency_key,
            parameters=dto.parameters or None,
            total_items=dto.total_items,
            succeeded_items=dto.succeeded_items,
            failed_items=dto.failed_items,
            skipped_items=dto.skipped_items,
            seq=dto.seq,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            correlation_id=dto.correlation_id,
            error_summary=dto.error_summary,
            created_by_id=created_by_id,
            updated_by_id=None,
        )

    def __repr__(self) -> str:
        return f"<BatchJobModel {self.id} {self.task_type} status={self.status}>"


class BatchItemModel(TrackedBase):
    """Per-item result within a batch job."""

    __tablename__ = "stock_batch_items"

    __table_args__ = (
        Index("ix_stock_batch_items_job_status", "job_id", "status"),
        Index("ix_stock_batch_items_item_key", "item_key"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("stock_batch_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_index: Mapped[int] = mapped_column(Integer, nullable=False)
    item_key: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    job: Mapped["BatchJobModel"] = relationship(
        "BatchJobModel",
        back_populates="items",
        foreign_keys=[job_id],
    )

    def to_dto(self) -> BatchItemResult:
        from stock_batch.domain.types import BatchItemResult, BatchItemStatus

        return BatchItemResult(
            item_index=self.item_index,
            item_key=self.item_key,
            status=BatchItemStatus(self.status),
            error_code=self.error_code,
            error_message=self.error_message,
            result_data=self.result_data,
            duration_ms=self.duration_ms,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )

    @classmethod
    def from_dto(
        cls, dto: BatchItemResult, job_id: UUID, created_by_id: UUID,
    ) -> BatchItemModel:
        return cls(
            job_id=job_id,
            item_index=dto.item_index,
            item_key=dto.item_key,
            status=dto.status.value,
            error_code=dto.error_code,
            error_message=dto.error_message,
            result_data=dto.result_data,
            duration_ms=dto.duration_ms,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            created_by_id=created_by_id,
            updated_by_id=None,
        )

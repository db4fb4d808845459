"""
stock_batch -- Scheduled re-derivation jobs.

Runs catalog-wide refreshes (classification arena, reorder evaluation) as
batch jobs with per-item SAVEPOINT isolation, job idempotency, cooperative
cancellation and a fixed-interval in-process scheduler.

Architecture:
    stock_batch/ is the outermost package.  Nothing in stock_kernel,
    stock_engines or stock_services imports from it (the kernel only
    imports its ORM module to register tables).

Invariants:
    - SAVEPOINT isolation per item: one failure never aborts the job.
    - Job idempotency through a UNIQUE idempotency_key.
    - Job ordering through SequenceService.
    - All timestamps from the injected Clock.
    - Graceful shutdown: a stop request stops dispatching remaining items.
"""

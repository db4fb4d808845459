"""
stock_services.worker_pool -- Parallel per-item evaluation across a catalog.

Responsibility:
    Fan read-only per-item work out over a thread pool.  Items are
    independent, so there is no ordering between them.

Invariants enforced:
    - Each item runs on its own session from the session factory; sessions
      are never shared between threads.
    - Once the cancel event is set, items that have not started are skipped
      and reported as such.  Items already running finish normally.
    - A failing item is reported as an ItemFailure and never aborts the run.

The pool only reads.  Writes (replacing classification records) happen
afterwards on the caller's session.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.logging_config import LogContext, get_logger
from stock_services._types import ItemFailure

logger = get_logger("services.worker_pool")

T = TypeVar("T")

_SKIPPED = object()


@dataclass(frozen=True)
class PoolResult(Generic[T]):
    results: dict[str, T]
    failures: tuple[ItemFailure, ...]
    skipped: tuple[str, ...]

    @property
    def cancelled(self) -> bool:
        return bool(self.skipped)


class CatalogWorkerPool:
    """ThreadPoolExecutor over item codes with cooperative cancellation."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        max_workers: int = 4,
    ):
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")
        self._session_factory = session_factory
        self._max_workers = max_workers

    def run(
        self,
        item_codes: Iterable[str],
        work: Callable[[Session, str], T],
        cancel_event: threading.Event | None = None,
    ) -> PoolResult[T]:
        codes = list(item_codes)
        results: dict[str, T] = {}
        failures: list[ItemFailure] = []
        skipped: list[str] = []

        with ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="stock-worker",
        ) as executor:
            futures = [
                (code, executor.submit(self._run_one, work, code, cancel_event))
                for code in codes
            ]
            for code, future in futures:
                try:
                    outcome = future.result()
                except Exception as exc:
                    failures.append(ItemFailure.from_exception(code, exc))
                    logger.warning(
                        "worker_item_failed",
                        extra={"item_code": code, "error": str(exc)},
                    )
                    continue
                if outcome is _SKIPPED:
                    skipped.append(code)
                else:
                    results[code] = outcome

        logger.info(
            "worker_pool_run_completed",
            extra={
                "item_count": len(codes),
                "succeeded": len(results),
                "failed": len(failures),
                "skipped": len(skipped),
                "max_workers": self._max_workers,
            },
        )
        return PoolResult(results=results, failures=tuple(failures), skipped=tuple(skipped))

    def _run_one(
        self,
        work: Callable[[Session, str], T],
        item_code: str,
        cancel_event: threading.Event | None,
    ):
        if cancel_event is not None and cancel_event.is_set():
            return _SKIPPED
        session = self._session_factory()
        try:
            with LogContext.bind(item_code=item_code):
                return work(session, item_code)
        finally:
            session.rollback()
            session.close()

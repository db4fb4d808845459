"""
Shared result types for catalog-wide service runs.

Per-item failures in catalog runs are isolated and reported, never raised:
one item's bad data must not abort the run for the others.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ItemFailure:
    """One item that could not be processed in a catalog run."""

    item_code: str
    error_code: str
    message: str

    @classmethod
    def from_exception(cls, item_code: str, exc: Exception) -> ItemFailure:
        return cls(
            item_code=item_code,
            error_code=getattr(exc, "code", None) or "UNHANDLED_EXCEPTION",
            message=str(exc) or type(exc).__name__,
        )

"""Descriptive item master DTO."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ItemMaster:
    item_code: str
    item_name: str | None = None
    category: str | None = None
    unit_of_measure: str | None = None

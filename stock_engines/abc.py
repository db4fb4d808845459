"""
Module: stock_engines.abc
Responsibility:
    Value-based A/B/C tiering of the catalog (Pareto classification).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every input item gets exactly one class.
    - Ranking is total_value descending, tie-broken by item_code ascending,
      so the result does not depend on input order.
    - An item is A while the cumulative value *before* it is below a_pct of
      the total, B while below a_pct + b_pct, else C.  Class A therefore
      holds at most a_pct of the value plus one boundary item.
    - A catalog whose total value is zero is all C.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from stock_engines.tracer import traced_engine
from stock_kernel.domain.classification import AbcClass
from stock_kernel.logging_config import get_logger

logger = get_logger("engines.abc")

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass(frozen=True)
class AbcItem:
    """An item's value as input to ABC ranking."""

    item_code: str
    total_value: Decimal


@dataclass(frozen=True)
class AbcClassSummary:
    abc_class: AbcClass
    item_count: int
    total_value: Decimal
    value_percent: Decimal
    item_percent: Decimal


def rank_items(items: Sequence[AbcItem]) -> list[AbcItem]:
    """Items ordered by (-total_value, item_code)."""
    return sorted(items, key=lambda i: (-i.total_value, i.item_code))


@traced_engine("abc", "1.0", fingerprint_fields=("a_pct", "b_pct"))
def classify_abc(
    items: Sequence[AbcItem],
    a_pct: Decimal = Decimal("80"),
    b_pct: Decimal = Decimal("15"),
) -> dict[str, AbcClass]:
    """
    Classify items into A/B/C by cumulative value share.

    Args:
        items: AbcItem per catalog item.  Item codes must be unique.
        a_pct: Cumulative % threshold for A items (default 80).
        b_pct: Cumulative % threshold for B items (default 15, so A+B=95).

    Returns:
        Mapping of item_code -> AbcClass covering every input item.

    Raises:
        ValueError: If percentages are invalid or item codes repeat.
    """
    if a_pct < 0 or b_pct < 0:
        raise ValueError("ABC percentages cannot be negative")
    if a_pct + b_pct > HUNDRED:
        raise ValueError(f"a_pct ({a_pct}) + b_pct ({b_pct}) exceeds 100%")

    codes = [i.item_code for i in items]
    if len(set(codes)) != len(codes):
        raise ValueError("Duplicate item codes in ABC input")

    if not items:
        return {}

    total_value = sum((max(i.total_value, ZERO) for i in items), ZERO)
    if total_value == 0:
        return {i.item_code: AbcClass.C for i in items}

    a_threshold = total_value * a_pct / HUNDRED
    ab_threshold = total_value * (a_pct + b_pct) / HUNDRED

    result: dict[str, AbcClass] = {}
    cumulative = ZERO
    for item in rank_items(items):
        prev_cumulative = cumulative
        cumulative += max(item.total_value, ZERO)
        if prev_cumulative < a_threshold:
            result[item.item_code] = AbcClass.A
        elif prev_cumulative < ab_threshold:
            result[item.item_code] = AbcClass.B
        else:
            result[item.item_code] = AbcClass.C

    logger.debug(
        "abc_classification_computed",
        extra={
            "item_count": len(items),
            "total_value": str(total_value),
            "a_count": sum(1 for c in result.values() if c is AbcClass.A),
        },
    )
    return result


def summarize_abc(
    items: Sequence[AbcItem],
    classes: dict[str, AbcClass],
) -> tuple[AbcClassSummary, ...]:
    """Count, value and share per class, in A, B, C order."""
    total_value = sum((i.total_value for i in items), ZERO)
    total_items = len(items)
    summaries = []
    for abc_class in AbcClass:
        members = [i for i in items if classes.get(i.item_code) is abc_class]
        value = sum((i.total_value for i in members), ZERO)
        summaries.append(
            AbcClassSummary(
                abc_class=abc_class,
                item_count=len(members),
                total_value=value,
                value_percent=value / total_value * HUNDRED if total_value > 0 else ZERO,
                item_percent=(
                    Decimal(len(members)) / Decimal(total_items) * HUNDRED
                    if total_items else ZERO
                ),
            )
        )
    return tuple(summaries)

"""
Module: stock_engines.consumption
Responsibility:
    Monthly consumption profile of an item from its issues: average
    monthly usage, trend, variability, pattern, a next-month forecast and
    a recommended safety stock.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Algorithm:
    1. Bucket issue quantities into the trailing ``months`` calendar months
       ending with the month of ``as_of_date`` (oldest first).
    2. average = mean of the non-zero months.
    3. trend % = (mean of last 3 months - mean of first 3) / mean of first 3.
       Zero when the first three months are empty.
    4. variance coefficient = population std-dev of all buckets around the
       average, as a percentage of the average.
    5. pattern: irregular > declining > seasonal > regular, first match wins.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable

from stock_config.schema import EngineConfig
from stock_engines.tracer import traced_engine
from stock_kernel.domain.entries import IssueEntry

ZERO = Decimal("0")
HUNDRED = Decimal("100")
THREE = Decimal("3")
CENT = Decimal("0.01")


class ConsumptionTrend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ConsumptionPattern(str, Enum):
    REGULAR = "regular"
    IRREGULAR = "irregular"
    SEASONAL = "seasonal"
    DECLINING = "declining"


@dataclass(frozen=True)
class ConsumptionProfile:
    item_code: str
    monthly_buckets: tuple[Decimal, ...]
    average_monthly_consumption: Decimal
    trend_direction: ConsumptionTrend
    trend_percentage: Decimal
    variance_coefficient: Decimal
    pattern: ConsumptionPattern
    seasonality_score: Decimal
    forecast_next_month: Decimal
    safety_stock_recommended: Decimal


def _month_index(d: date) -> int:
    return d.year * 12 + (d.month - 1)


def monthly_buckets(
    issues: Iterable[IssueEntry],
    as_of_date: date,
    months: int,
) -> list[Decimal]:
    """Issue quantity per calendar month, oldest first, ending at as_of_date's month."""
    last = _month_index(as_of_date)
    first = last - months + 1
    buckets = [ZERO] * months
    for issue in issues:
        idx = _month_index(issue.entry_date)
        if first <= idx <= last and issue.entry_date <= as_of_date:
            buckets[idx - first] += issue.quantity
    return buckets


class ConsumptionAnalyzer:

    def __init__(self, config: EngineConfig | None = None):
        self._config = config or EngineConfig()

    @traced_engine("consumption", "1.0", fingerprint_fields=("item_code", "as_of_date", "months"))
    def analyze(
        self,
        item_code: str,
        issues: Iterable[IssueEntry],
        as_of_date: date,
        months: int | None = None,
    ) -> ConsumptionProfile:
        cfg = self._config
        months = months or cfg.consumption_months
        if months < 6:
            raise ValueError("consumption analysis needs at least 6 months")

        buckets = monthly_buckets(issues, as_of_date, months)

        non_zero = [b for b in buckets if b > 0]
        average = sum(non_zero, ZERO) / len(non_zero) if non_zero else ZERO

        recent = sum(buckets[-3:], ZERO) / THREE
        earlier = sum(buckets[:3], ZERO) / THREE
        trend_pct = (recent - earlier) / earlier * HUNDRED if earlier > 0 else ZERO

        if abs(trend_pct) > cfg.consumption_trend_threshold_percent:
            direction = ConsumptionTrend.INCREASING if trend_pct > 0 else ConsumptionTrend.DECREASING
        else:
            direction = ConsumptionTrend.STABLE

        if average > 0:
            variance = sum(((b - average) ** 2 for b in buckets), ZERO) / len(buckets)
            cv = variance.sqrt() / average * HUNDRED
        else:
            cv = ZERO

        if cv > cfg.irregular_variance_percent:
            pattern = ConsumptionPattern.IRREGULAR
        elif direction is ConsumptionTrend.DECREASING and trend_pct < cfg.declining_trend_percent:
            pattern = ConsumptionPattern.DECLINING
        elif cv > cfg.seasonal_variance_percent:
            pattern = ConsumptionPattern.SEASONAL
        else:
            pattern = ConsumptionPattern.REGULAR

        forecast = max(ZERO, recent + recent * trend_pct / HUNDRED)
        safety = Decimal(math.ceil(average * (1 + cv / HUNDRED) / 2))

        return ConsumptionProfile(
            item_code=item_code,
            monthly_buckets=tuple(buckets),
            average_monthly_consumption=average,
            trend_direction=direction,
            trend_percentage=trend_pct.quantize(CENT, rounding=ROUND_HALF_UP),
            variance_coefficient=cv.quantize(CENT, rounding=ROUND_HALF_UP),
            pattern=pattern,
            seasonality_score=min(cv / HUNDRED, Decimal("1")),
            forecast_next_month=forecast.quantize(Decimal("1"), rounding=ROUND_HALF_UP),
            safety_stock_recommended=safety,
        )

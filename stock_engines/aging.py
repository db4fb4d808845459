"""
Module: stock_engines.aging
Responsibility:
    Bucket items by days since their last movement and translate the age
    into a risk level, a recommended action and a potential write-down.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - days_since_last_transaction is never None: an item that has never
      moved gets the configured sentinel (999 by default).
    - Each day count falls in exactly one configured bracket.
    - valuation_impact = total_value x impact factor of the risk level,
      and is zero for non-positive values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from stock_config.schema import EngineConfig
from stock_engines.tracer import traced_engine
from stock_kernel.domain.classification import AgingAction, AgingTrend, RiskLevel

ZERO = Decimal("0")

RISK_ACTIONS: dict[RiskLevel, AgingAction] = {
    RiskLevel.LOW: AgingAction.MONITOR,
    RiskLevel.MEDIUM: AgingAction.REVIEW,
    RiskLevel.HIGH: AgingAction.LIQUIDATE,
    RiskLevel.CRITICAL: AgingAction.WRITEOFF,
}


@dataclass(frozen=True)
class AgingResult:
    days_since_last_transaction: int
    last_movement_date: date | None
    aging_bracket: str
    risk_level: RiskLevel
    recommended_action: AgingAction
    total_value: Decimal
    valuation_impact: Decimal
    aging_trend: AgingTrend


@dataclass(frozen=True)
class AgingBracketSummary:
    label: str
    item_count: int
    total_value: Decimal
    valuation_impact: Decimal


class StockAgingClassifier:
    """Days-since-movement aging and risk."""

    def __init__(self, config: EngineConfig | None = None):
        self._config = config or EngineConfig()

    def days_since(
        self,
        last_receipt_date: date | None,
        last_issue_date: date | None,
        as_of_date: date,
    ) -> tuple[int, date | None]:
        dates = [d for d in (last_receipt_date, last_issue_date) if d is not None]
        if not dates:
            return self._config.no_movement_sentinel_days, None
        last = max(dates)
        # Future-dated movement counts as moved today.
        return max((as_of_date - last).days, 0), last

    def bracket_for(self, days: int) -> str:
        for bracket in self._config.aging_brackets:
            if bracket.contains(days):
                return bracket.label
        # Unreachable with validated contiguous brackets.
        return self._config.aging_brackets[-1].label

    def risk_for(self, days: int) -> RiskLevel:
        cfg = self._config
        if days <= cfg.low_risk_max_days:
            return RiskLevel.LOW
        if days <= cfg.medium_risk_max_days:
            return RiskLevel.MEDIUM
        if days <= cfg.high_risk_max_days:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL

    def impact_factor(self, risk: RiskLevel) -> Decimal:
        return {
            RiskLevel.LOW: ZERO,
            RiskLevel.MEDIUM: self._config.medium_risk_impact,
            RiskLevel.HIGH: self._config.high_risk_impact,
            RiskLevel.CRITICAL: self._config.critical_risk_impact,
        }[risk]

    def trend_for(self, days: int) -> AgingTrend:
        if days > self._config.aging_trend_deteriorating_days:
            return AgingTrend.DETERIORATING
        if days > self._config.aging_trend_stable_days:
            return AgingTrend.STABLE
        return AgingTrend.IMPROVING

    @traced_engine("aging", "1.0", fingerprint_fields=("last_receipt_date", "last_issue_date", "as_of_date"))
    def classify(
        self,
        last_receipt_date: date | None,
        last_issue_date: date | None,
        as_of_date: date,
        total_value: Decimal = ZERO,
    ) -> AgingResult:
        days, last = self.days_since(last_receipt_date, last_issue_date, as_of_date)
        risk = self.risk_for(days)
        impact = total_value * self.impact_factor(risk) if total_value > 0 else ZERO
        return AgingResult(
            days_since_last_transaction=days,
            last_movement_date=last,
            aging_bracket=self.bracket_for(days),
            risk_level=risk,
            recommended_action=RISK_ACTIONS[risk],
            total_value=total_value,
            valuation_impact=impact,
            aging_trend=self.trend_for(days),
        )


def summarize_aging(
    results: Sequence[AgingResult],
    config: EngineConfig | None = None,
) -> tuple[AgingBracketSummary, ...]:
    """Per-bracket counts and values, in configured bracket order."""
    config = config or EngineConfig()
    summaries = []
    for bracket in config.aging_brackets:
        members = [r for r in results if r.aging_bracket == bracket.label]
        summaries.append(
            AgingBracketSummary(
                label=bracket.label,
                item_count=len(members),
                total_value=sum((r.total_value for r in members), ZERO),
                valuation_impact=sum((r.valuation_impact for r in members), ZERO),
            )
        )
    return tuple(summaries)

"""
Engine Configuration Schema (``stock_config.schema``).

Every threshold the engines use lives here: movement windows, ABC cutoffs,
velocity thresholds, aging brackets and risk factors, consumption pattern
limits, reorder urgency multipliers and the inventory optimization cost
assumptions.  Engines receive an ``EngineConfig``
explicitly; none of them reads a module-level constant.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Any, Self

from stock_kernel.logging_config import get_logger

logger = get_logger("config.schema")


VALID_COST_METHODS = {"weighted_avg", "fifo", "lifo"}


@dataclass(frozen=True)
class AgingBracket:
    """Days-since-movement range with inclusive bounds; max_days None is open."""

    label: str
    min_days: int
    max_days: int | None = None

    def __post_init__(self):
        if self.min_days < 0:
            raise ValueError("min_days cannot be negative")
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days must be >= min_days")

    def contains(self, days: int) -> bool:
        if days < self.min_days:
            return False
        if self.max_days is not None and days > self.max_days:
            return False
        return True


DEFAULT_AGING_BRACKETS: tuple[AgingBracket, ...] = (
    AgingBracket("0-30", 0, 30),
    AgingBracket("31-60", 31, 60),
    AgingBracket("61-90", 61, 90),
    AgingBracket("91-180", 91, 180),
    AgingBracket("181-365", 181, 365),
    AgingBracket("365+", 366, None),
)


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the stock engines.

    Field defaults are the thresholds the purchasing team works with today.
    Override at instantiation or through a YAML file:

        config = EngineConfig(movement_window_days=60, abc_class_a_percent=Decimal("70"))
    """

    currency: str = "INR"

    # Balance and valuation
    default_cost_method: str = "weighted_avg"
    opening_stock_date: date | None = None

    # Movement classification
    movement_window_days: int = 30
    annualization_factor: Decimal = Decimal("12")
    fast_moving_velocity: Decimal = Decimal("2")
    medium_moving_velocity: Decimal = Decimal("0.5")

    # ABC classification thresholds (by value)
    abc_class_a_percent: Decimal = Decimal("80")
    abc_class_b_percent: Decimal = Decimal("15")

    # Aging and risk
    aging_brackets: tuple[AgingBracket, ...] = DEFAULT_AGING_BRACKETS
    low_risk_max_days: int = 60
    medium_risk_max_days: int = 120
    high_risk_max_days: int = 365
    medium_risk_impact: Decimal = Decimal("0.10")
    high_risk_impact: Decimal = Decimal("0.25")
    critical_risk_impact: Decimal = Decimal("0.50")
    aging_trend_stable_days: int = 60
    aging_trend_deteriorating_days: int = 180
    no_movement_sentinel_days: int = 999

    # Consumption patterns
    consumption_months: int = 12
    consumption_trend_threshold_percent: Decimal = Decimal("10")
    irregular_variance_percent: Decimal = Decimal("50")
    seasonal_variance_percent: Decimal = Decimal("25")
    declining_trend_percent: Decimal = Decimal("-20")

    # Reorder urgency
    high_urgency_lead_multiplier: Decimal = Decimal("2")
    medium_urgency_level_ratio: Decimal = Decimal("0.5")

    # Inventory optimization
    demand_window_days: int = 90
    default_lead_time_days: int = 30
    service_level_percent: Decimal = Decimal("95")
    demand_variation_factor: Decimal = Decimal("0.3")
    ordering_cost: Decimal = Decimal("500")
    carrying_cost_rate: Decimal = Decimal("0.25")
    default_unit_cost: Decimal = Decimal("100")
    stockout_cover_days: int = 7

    # Runtime
    max_workers: int = 4
    refresh_interval_seconds: int = 3600

    def __post_init__(self):
        if self.default_cost_method not in VALID_COST_METHODS:
            raise ValueError(
                f"default_cost_method must be one of {VALID_COST_METHODS}, "
                f"got '{self.default_cost_method}'"
            )

        if self.movement_window_days <= 0:
            raise ValueError("movement_window_days must be positive")
        if self.annualization_factor <= 0:
            raise ValueError("annualization_factor must be positive")
        if self.medium_moving_velocity <= 0:
            raise ValueError("medium_moving_velocity must be positive")
        if self.fast_moving_velocity < self.medium_moving_velocity:
            raise ValueError("fast_moving_velocity cannot be below medium_moving_velocity")

        if self.abc_class_a_percent < 0:
            raise ValueError("abc_class_a_percent cannot be negative")
        if self.abc_class_b_percent < 0:
            raise ValueError("abc_class_b_percent cannot be negative")
        abc_total = self.abc_class_a_percent + self.abc_class_b_percent
        if abc_total > Decimal("100"):
            raise ValueError(
                f"abc_class_a_percent + abc_class_b_percent cannot exceed 100%, "
                f"got {abc_total}%"
            )

        if not self.aging_brackets:
            raise ValueError("aging_brackets cannot be empty")
        if self.aging_brackets[0].min_days != 0:
            raise ValueError("first aging bracket must start at 0 days")
        for prev, nxt in zip(self.aging_brackets, self.aging_brackets[1:]):
            if prev.max_days is None or nxt.min_days != prev.max_days + 1:
                raise ValueError(
                    f"aging brackets must be contiguous: {prev.label} -> {nxt.label}"
                )
        if self.aging_brackets[-1].max_days is not None:
            raise ValueError("last aging bracket must be open-ended")

        if not (0 <= self.low_risk_max_days < self.medium_risk_max_days < self.high_risk_max_days):
            raise ValueError("risk day thresholds must be strictly increasing")
        for name in ("medium_risk_impact", "high_risk_impact", "critical_risk_impact"):
            value = getattr(self, name)
            if value < 0 or value > 1:
                raise ValueError(f"{name} must be between 0 and 1")
        if self.aging_trend_deteriorating_days < self.aging_trend_stable_days:
            raise ValueError("aging_trend_deteriorating_days cannot be below aging_trend_stable_days")
        if self.no_movement_sentinel_days <= self.high_risk_max_days:
            raise ValueError("no_movement_sentinel_days must exceed high_risk_max_days")

        if self.consumption_months < 6:
            raise ValueError("consumption_months must be at least 6")
        if self.consumption_trend_threshold_percent < 0:
            raise ValueError("consumption_trend_threshold_percent cannot be negative")

        if self.high_urgency_lead_multiplier < 1:
            raise ValueError("high_urgency_lead_multiplier must be >= 1")
        if not (0 <= self.medium_urgency_level_ratio <= 1):
            raise ValueError("medium_urgency_level_ratio must be between 0 and 1")

        if self.demand_window_days <= 0:
            raise ValueError("demand_window_days must be positive")
        if self.default_lead_time_days < 0:
            raise ValueError("default_lead_time_days cannot be negative")
        if not (0 < self.service_level_percent < 100):
            raise ValueError("service_level_percent must be between 0 and 100")
        for name in ("demand_variation_factor", "ordering_cost", "default_unit_cost"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        if not (0 < self.carrying_cost_rate <= 1):
            raise ValueError("carrying_cost_rate must be in (0, 1]")
        if self.stockout_cover_days < 0:
            raise ValueError("stockout_cover_days cannot be negative")

        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if self.refresh_interval_seconds <= 0:
            raise ValueError("refresh_interval_seconds must be positive")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard thresholds."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a flat dictionary (e.g. a parsed YAML file).

        Unknown keys raise ValueError rather than being ignored.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {unknown}")
        logger.info(
            "engine_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    def as_dict(self) -> dict[str, Any]:
        """Plain dict view, used for checksums and trace logs."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "aging_brackets":
                value = [
                    {"label": b.label, "min_days": b.min_days, "max_days": b.max_days}
                    for b in value
                ]
            out[f.name] = value
        return out

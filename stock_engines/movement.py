"""
Module: stock_engines.movement
Responsibility:
    Classify how fast an item moves from its trailing-window issues relative
    to stock on hand, and derive the movement trend and stock recommendation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - velocity = issues / current_stock when stock is positive, else 0.
      Stock at or below zero is DEAD_STOCK with velocity and turnover 0,
      whatever the window issues were.
    - Monotone: for fixed stock, more issues never lowers the class
      (DEAD_STOCK < SLOW_MOVING < MEDIUM_MOVING < FAST_MOVING).
    - turnover_ratio = issues x annualization_factor / current_stock.

This velocity-based class is the one definition of dead stock.  Days since
the last movement is reported separately as aging risk (stock_engines.aging).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stock_config.schema import EngineConfig
from stock_engines.tracer import traced_engine
from stock_kernel.domain.classification import (
    MovementClass,
    MovementTrend,
    StockRecommendation,
)

ZERO = Decimal("0")

MOVEMENT_ORDER: dict[MovementClass, int] = {
    MovementClass.DEAD_STOCK: 0,
    MovementClass.SLOW_MOVING: 1,
    MovementClass.MEDIUM_MOVING: 2,
    MovementClass.FAST_MOVING: 3,
}


@dataclass(frozen=True)
class MovementResult:
    movement_class: MovementClass
    velocity: Decimal
    turnover_ratio: Decimal
    movement_trend: MovementTrend
    stock_recommendation: StockRecommendation
    issues_in_window: Decimal
    receipts_in_window: Decimal


class MovementClassifier:
    """Velocity-based movement classification."""

    def __init__(self, config: EngineConfig | None = None):
        self._config = config or EngineConfig()

    def classify_velocity(self, velocity: Decimal) -> MovementClass:
        if velocity >= self._config.fast_moving_velocity:
            return MovementClass.FAST_MOVING
        if velocity >= self._config.medium_moving_velocity:
            return MovementClass.MEDIUM_MOVING
        if velocity > 0:
            return MovementClass.SLOW_MOVING
        return MovementClass.DEAD_STOCK

    @staticmethod
    def trend(issues: Decimal, receipts: Decimal) -> MovementTrend:
        """Issues outpacing receipts is a draining (decreasing) stock."""
        if issues <= 0:
            return MovementTrend.NO_DATA
        if issues > receipts:
            return MovementTrend.DECREASING
        if issues < receipts:
            return MovementTrend.INCREASING
        return MovementTrend.STABLE

    @staticmethod
    def recommend(movement_class: MovementClass, trend: MovementTrend) -> StockRecommendation:
        if movement_class is MovementClass.FAST_MOVING:
            if trend is MovementTrend.INCREASING:
                return StockRecommendation.INCREASE_STOCK
            return StockRecommendation.MAINTAIN_STOCK
        if movement_class is MovementClass.MEDIUM_MOVING:
            return StockRecommendation.MAINTAIN_STOCK
        if movement_class is MovementClass.SLOW_MOVING:
            return StockRecommendation.REDUCE_STOCK
        return StockRecommendation.DISCONTINUE

    @traced_engine("movement", "1.0", fingerprint_fields=("current_stock", "issues_in_window", "receipts_in_window"))
    def classify(
        self,
        current_stock: Decimal,
        issues_in_window: Decimal,
        receipts_in_window: Decimal = ZERO,
    ) -> MovementResult:
        if current_stock <= 0:
            velocity = ZERO
            turnover = ZERO
            movement_class = MovementClass.DEAD_STOCK
        else:
            velocity = issues_in_window / current_stock
            turnover = issues_in_window * self._config.annualization_factor / current_stock
            movement_class = self.classify_velocity(velocity)

        trend = self.trend(issues_in_window, receipts_in_window)
        return MovementResult(
            movement_class=movement_class,
            velocity=velocity,
            turnover_ratio=turnover,
            movement_trend=trend,
            stock_recommendation=self.recommend(movement_class, trend),
            issues_in_window=issues_in_window,
            receipts_in_window=receipts_in_window,
        )

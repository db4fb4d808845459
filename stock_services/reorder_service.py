"""
stock_services.reorder_service -- Reorder rules and purchase suggestions.

Responsibility:
    Maintain reorder rules, evaluate items against them, persist PENDING
    suggestions and drive the suggestion approval lifecycle.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    Composes BalanceService (current stock), LedgerSelector (consumption
    window), ValuationService (cost estimate) and the pure ReorderEvaluator.

Invariants enforced:
    - A suggestion exists for an evaluation iff current_stock <= reorder_level.
    - Lifecycle PENDING -> {APPROVED -> ORDERED, REJECTED}.  Terminal
      suggestions are never revived; each evaluation creates a new PENDING
      suggestion.
    - Approval actions only touch suggestion rows, never the ledger.
    - Rules are deactivated, never deleted.

Failure modes:
    - InvalidReorderRuleError from create_rule() / evaluate().
    - ReorderRuleNotFoundError, SuggestionNotFoundError.
    - InvalidSuggestionTransitionError for an action not allowed from the
      suggestion's current status.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_config.schema import EngineConfig
from stock_engines.balance import window_totals
from stock_engines.reorder import ReorderEvaluator, validate_rule
from stock_engines.valuation import CostMethod
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.reorder import (
    ReorderRule,
    ReorderSuggestion,
    ReorderUrgency,
    SuggestionStatus,
)
from stock_kernel.exceptions import (
    InvalidSuggestionTransitionError,
    ReorderRuleNotFoundError,
    SuggestionNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.reorder import ReorderRuleModel, ReorderSuggestionModel
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_services._types import ItemFailure
from stock_services.balance_service import BalanceService
from stock_services.valuation_service import ValuationService

logger = get_logger("services.reorder")

# action -> statuses it may be applied from
_ALLOWED_FROM: dict[str, frozenset[SuggestionStatus]] = {
    "approve": frozenset({SuggestionStatus.PENDING}),
    "reject": frozenset({SuggestionStatus.PENDING}),
    "override_quantity": frozenset({SuggestionStatus.PENDING, SuggestionStatus.APPROVED}),
    "mark_ordered": frozenset({SuggestionStatus.APPROVED}),
}


@dataclass(frozen=True)
class ReorderCycleResult:
    cycle_id: UUID
    evaluated_items: int
    suggestions: tuple[ReorderSuggestion, ...]
    failures: tuple[ItemFailure, ...]
    cancelled: bool = False

    @property
    def critical_count(self) -> int:
        return sum(1 for s in self.suggestions if s.urgency is ReorderUrgency.CRITICAL)


class ReorderService:
    """Reorder rules, evaluation and the suggestion lifecycle."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or EngineConfig()
        self._selector = LedgerSelector(session)
        self._balance = BalanceService(session, self._clock, self._config)
        self._valuation = ValuationService(session, self._clock, self._config)
        self._evaluator = ReorderEvaluator(self._config)

    # -------------------------------------------------------------------------
    # Rule store
    # -------------------------------------------------------------------------

    def create_rule(self, rule: ReorderRule, actor_id: UUID) -> ReorderRule:
        rule = replace(rule, item_code=(rule.item_code or "").strip())
        validate_rule(rule)
        model = ReorderRuleModel.from_dto(rule, created_by_id=actor_id)
        self._session.add(model)
        self._session.flush()
        logger.info(
            "reorder_rule_created",
            extra={
                "rule_id": str(model.id),
                "item_code": model.item_code,
                "supplier_code": model.supplier_code,
                "reorder_level": str(model.reorder_level),
            },
        )
        return model.to_dto()

    def deactivate_rule(self, rule_id: UUID, actor_id: UUID) -> ReorderRule:
        model = self._session.get(ReorderRuleModel, rule_id)
        if model is None:
            raise ReorderRuleNotFoundError(str(rule_id))
        model.is_active = False
        model.updated_by_id = actor_id
        self._session.flush()
        logger.info("reorder_rule_deactivated", extra={"rule_id": str(rule_id)})
        return model.to_dto()

    def get_rule(self, rule_id: UUID) -> ReorderRule:
        model = self._session.get(ReorderRuleModel, rule_id)
        if model is None:
            raise ReorderRuleNotFoundError(str(rule_id))
        return model.to_dto()

    def list_rules(
        self,
        item_code: str | None = None,
        active_only: bool = True,
    ) -> tuple[ReorderRule, ...]:
        stmt = select(ReorderRuleModel).order_by(
            ReorderRuleModel.item_code, ReorderRuleModel.lead_time_days,
        )
        if item_code is not None:
            stmt = stmt.where(ReorderRuleModel.item_code == item_code.strip())
        if active_only:
            stmt = stmt.where(ReorderRuleModel.is_active == True)  # noqa: E712
        return tuple(m.to_dto() for m in self._session.execute(stmt).scalars().all())

    def active_rule_for(self, item_code: str) -> ReorderRule | None:
        """The active rule with the shortest lead time; ties go to supplier code."""
        rules = self.list_rules(item_code=item_code)
        if not rules:
            return None
        return min(rules, key=lambda r: (r.lead_time_days, r.supplier_code or ""))

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        item_code: str,
        cycle_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> ReorderSuggestion | None:
        """Evaluate one item; persist and return a PENDING suggestion if triggered.

        Returns None when the item has no active rule or is above its level.
        """
        item_code = item_code.strip()
        rule = self.active_rule_for(item_code)
        if rule is None:
            return None

        today = self._clock.today()
        ledger = self._selector.item_ledger(item_code)
        position = self._balance.position_for(ledger)
        issues, _ = window_totals(
            ledger, as_of_date=today, window_days=self._config.movement_window_days,
            since=position.counted_from,
        )
        avg_daily = issues / Decimal(self._config.movement_window_days)

        decision = self._evaluator.evaluate(
            rule,
            current_stock=position.current_stock,
            avg_daily_consumption=avg_daily,
            as_of_date=today,
        )
        if decision is None:
            return None

        valuation = self._valuation.valuate_ledger(
            ledger, method=CostMethod.WEIGHTED_AVG, quantity=decision.suggested_quantity,
        )
        estimated_cost = None if valuation.missing_cost_basis else valuation.total_value

        model = ReorderSuggestionModel(
            item_code=item_code,
            rule_id=rule.rule_id,
            supplier_code=rule.supplier_code,
            current_stock=decision.current_stock,
            reorder_level=decision.reorder_level,
            suggested_quantity=decision.suggested_quantity,
            urgency=decision.urgency.value,
            status=SuggestionStatus.PENDING.value,
            reason=decision.reason,
            days_to_stockout=decision.days_to_stockout,
            estimated_stockout_date=decision.estimated_stockout_date,
            avg_daily_consumption=decision.avg_daily_consumption,
            estimated_cost=estimated_cost,
            cycle_id=cycle_id,
            created_by_id=actor_id or uuid4(),
        )
        model.created_at = self._clock.now()
        self._session.add(model)
        self._session.flush()

        logger.info(
            "reorder_suggestion_created",
            extra={
                "suggestion_id": str(model.id),
                "item_code": item_code,
                "urgency": decision.urgency.value,
                "suggested_quantity": str(decision.suggested_quantity),
            },
        )
        return model.to_dto()

    def evaluate_all(
        self,
        actor_id: UUID | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ReorderCycleResult:
        """Evaluate every item with an active rule under a new cycle id."""
        cycle_id = uuid4()
        item_codes = sorted({r.item_code for r in self.list_rules()})
        suggestions: list[ReorderSuggestion] = []
        failures: list[ItemFailure] = []
        evaluated = 0
        cancelled = False

        with LogContext.bind(run_id=str(cycle_id)):
            for code in item_codes:
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                savepoint = self._session.begin_nested()
                try:
                    suggestion = self.evaluate(code, cycle_id=cycle_id, actor_id=actor_id)
                except Exception as exc:
                    savepoint.rollback()
                    failures.append(ItemFailure.from_exception(code, exc))
                    logger.warning(
                        "reorder_evaluation_failed",
                        extra={"item_code": code, "error": str(exc)},
                    )
                    continue
                savepoint.commit()
                evaluated += 1
                if suggestion is not None:
                    suggestions.append(suggestion)

            logger.info(
                "reorder_cycle_completed",
                extra={
                    "rule_items": len(item_codes),
                    "evaluated": evaluated,
                    "suggestions": len(suggestions),
                    "failed": len(failures),
                    "cancelled": cancelled,
                },
            )

        return ReorderCycleResult(
            cycle_id=cycle_id,
            evaluated_items=evaluated,
            suggestions=tuple(suggestions),
            failures=tuple(failures),
            cancelled=cancelled,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def approve(
        self,
        suggestion_id: UUID,
        actor_id: UUID,
        quantity: Decimal | None = None,
        note: str | None = None,
    ) -> ReorderSuggestion:
        model = self._load_for("approve", suggestion_id)
        if quantity is not None:
            self._check_quantity(quantity)
            model.suggested_quantity = quantity
        return self._decide(model, SuggestionStatus.APPROVED, actor_id, note)

    def reject(self, suggestion_id: UUID, actor_id: UUID, note: str | None = None) -> ReorderSuggestion:
        model = self._load_for("reject", suggestion_id)
        return self._decide(model, SuggestionStatus.REJECTED, actor_id, note)

    def override_quantity(
        self,
        suggestion_id: UUID,
        quantity: Decimal,
        actor_id: UUID,
    ) -> ReorderSuggestion:
        """Change the quantity before the order is placed."""
        model = self._load_for("override_quantity", suggestion_id)
        self._check_quantity(quantity)
        previous = model.suggested_quantity
        model.suggested_quantity = quantity
        model.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "reorder_quantity_overridden",
            extra={
                "suggestion_id": str(suggestion_id),
                "previous_quantity": str(previous),
                "quantity": str(quantity),
            },
        )
        return model.to_dto()

    def mark_ordered(
        self,
        suggestion_id: UUID,
        actor_id: UUID,
        po_number: str | None = None,
    ) -> ReorderSuggestion:
        model = self._load_for("mark_ordered", suggestion_id)
        model.po_number = po_number
        model.status = SuggestionStatus.ORDERED.value
        model.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "reorder_suggestion_ordered",
            extra={"suggestion_id": str(suggestion_id), "po_number": po_number},
        )
        return model.to_dto()

    def get_suggestion(self, suggestion_id: UUID) -> ReorderSuggestion:
        model = self._session.get(ReorderSuggestionModel, suggestion_id)
        if model is None:
            raise SuggestionNotFoundError(str(suggestion_id))
        return model.to_dto()

    def list_suggestions(
        self,
        status: SuggestionStatus | None = None,
        urgency: ReorderUrgency | None = None,
        cycle_id: UUID | None = None,
        item_code: str | None = None,
    ) -> tuple[ReorderSuggestion, ...]:
        """Suggestions, most urgent first."""
        stmt = select(ReorderSuggestionModel)
        if status is not None:
            stmt = stmt.where(ReorderSuggestionModel.status == status.value)
        if urgency is not None:
            stmt = stmt.where(ReorderSuggestionModel.urgency == urgency.value)
        if cycle_id is not None:
            stmt = stmt.where(ReorderSuggestionModel.cycle_id == cycle_id)
        if item_code is not None:
            stmt = stmt.where(ReorderSuggestionModel.item_code == item_code.strip())
        suggestions = [m.to_dto() for m in self._session.execute(stmt).scalars().all()]
        suggestions.sort(key=lambda s: (-s.urgency.rank, s.item_code))
        return tuple(suggestions)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _load_for(self, action: str, suggestion_id: UUID) -> ReorderSuggestionModel:
        model = self._session.get(ReorderSuggestionModel, suggestion_id)
        if model is None:
            raise SuggestionNotFoundError(str(suggestion_id))
        status = SuggestionStatus(model.status)
        if status not in _ALLOWED_FROM[action]:
            raise InvalidSuggestionTransitionError(str(suggestion_id), status.value, action)
        return model

    def _decide(
        self,
        model: ReorderSuggestionModel,
        status: SuggestionStatus,
        actor_id: UUID,
        note: str | None,
    ) -> ReorderSuggestion:
        model.status = status.value
        model.decided_by_id = actor_id
        model.decided_at = self._clock.now()
        model.decision_note = note
        model.updated_by_id = actor_id
        self._session.flush()
        logger.info(
            "reorder_suggestion_decided",
            extra={
                "suggestion_id": str(model.id),
                "item_code": model.item_code,
                "status": status.value,
            },
        )
        return model.to_dto()

    @staticmethod
    def _check_quantity(quantity: Decimal) -> None:
        if quantity <= 0:
            raise ValueError(f"Order quantity must be positive, got {quantity}")

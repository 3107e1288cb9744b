"""Condition registry - lifecycle state machine and write-once payout weights.

Unprepared -> Unresolved (prepare) -> Resolved (resolve, oracle only, exactly once).
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from ctfmarket import ids
from ctfmarket.errors import (
    AlreadyPrepared,
    AlreadyResolved,
    ConditionNotResolved,
    InvalidIdentifier,
    InvalidPayouts,
    NotOracle,
    UnknownCondition,
)
from ctfmarket.ledger.journal import Journal
from ctfmarket.models import Condition, ConditionState, Resolved

log = structlog.get_logger(__name__)


class ConditionRegistry:
    def __init__(self, journal: Journal | None = None) -> None:
        self.journal = journal or Journal()
        self._conditions: dict[str, Condition] = {}

    def prepare(self, oracle: str, question_id: str) -> Condition:
        """Create an Unresolved condition. A second prepare of the same id fails."""
        oracle = ids.to_address(oracle)
        question_id = ids.normalize_id(question_id)
        condition_id = ids.condition_id(oracle, question_id)
        if condition_id in self._conditions:
            raise AlreadyPrepared(f"Condition already prepared: {condition_id}", condition_id=condition_id)
        condition = Condition(condition_id=condition_id, oracle=oracle, question_id=question_id)
        self.journal.write(self._conditions, condition_id, condition)
        log.info("condition_prepared", condition_id=condition_id, oracle=oracle, question_id=question_id)
        return condition

    def resolve(self, condition_id: str, payouts: Sequence[int], caller: str) -> Condition:
        condition = self.get(condition_id)
        if not isinstance(caller, str) or caller.lower() != condition.oracle.lower():
            raise NotOracle(f"{caller} is not the oracle of {condition.condition_id}", caller=caller)
        if condition.is_resolved:
            raise AlreadyResolved(f"Condition already resolved: {condition.condition_id}")
        weights = _validate_payouts(payouts)
        resolved = condition.model_copy(update={"resolution": Resolved(payouts=weights)})
        self.journal.write(self._conditions, condition.condition_id, resolved)
        log.info("condition_resolved", condition_id=condition.condition_id, payouts=list(weights))
        return resolved

    def report_payouts(self, oracle: str, question_id: str, payouts: Sequence[int]) -> Condition:
        """Resolve the condition this oracle prepared for question_id."""
        return self.resolve(ids.condition_id(oracle, question_id), payouts, caller=oracle)

    def get(self, condition_id: str) -> Condition:
        condition = self._conditions.get(_key(condition_id))
        if condition is None:
            raise UnknownCondition(f"Unknown condition: {condition_id}", condition_id=condition_id)
        return condition

    def state(self, condition_id: str) -> ConditionState:
        condition = self._conditions.get(_key(condition_id))
        return condition.state if condition else ConditionState.UNPREPARED

    def payouts(self, condition_id: str) -> tuple[int, int]:
        resolution = self.get(condition_id).resolution
        if not isinstance(resolution, Resolved):
            raise ConditionNotResolved(f"Condition not resolved: {condition_id}", condition_id=condition_id)
        return resolution.payouts

    def conditions(self) -> list[Condition]:
        return sorted(self._conditions.values(), key=lambda c: c.prepared_at)

    def load(self, conditions: list[Condition]) -> None:
        self._conditions = {c.condition_id: c for c in conditions}


def _key(condition_id: str) -> str:
    try:
        return ids.normalize_id(condition_id)
    except InvalidIdentifier:
        return condition_id


def _validate_payouts(payouts: Sequence[int]) -> tuple[int, int]:
    weights = tuple(payouts)
    if len(weights) != ids.OUTCOME_SLOT_COUNT:
        raise InvalidPayouts(f"Expected {ids.OUTCOME_SLOT_COUNT} payout weights, got {len(weights)}")
    if any(isinstance(w, bool) or not isinstance(w, int) or w < 0 for w in weights):
        raise InvalidPayouts(f"Payout weights must be non-negative integers: {list(weights)}")
    if sum(weights) == 0:
        raise InvalidPayouts("Payout weights are all zero")
    return weights  # type: ignore[return-value]

"""Position engine - split, merge, transfer and redeem as atomic, serialized transactions.

Every mutating call takes the engine lock, opens a journal transaction over the
collateral ledger, the outcome token ledger and the condition registry, and
either commits all of its writes or none of them.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from threading import RLock
from typing import Any

import structlog

from ctfmarket.errors import ConditionNotResolved, LedgerError, check_amount
from ctfmarket.ids import OUTCOME_SLOT_COUNT
from ctfmarket.ledger import CollateralLedger, ConditionRegistry, Journal, OutcomeTokenLedger
from ctfmarket.models import Condition, ConditionState, EventKind, LedgerEvent, Position, Resolved

log = structlog.get_logger(__name__)

OUTCOMES = range(OUTCOME_SLOT_COUNT)


class PositionEngine:
    """Sole writer of outcome balances and condition state."""

    def __init__(
        self,
        collateral: CollateralLedger,
        tokens: OutcomeTokenLedger | None = None,
        registry: ConditionRegistry | None = None,
    ) -> None:
        self.journal: Journal = collateral.journal
        self.collateral = collateral
        self.tokens = tokens or OutcomeTokenLedger(self.journal)
        self.registry = registry or ConditionRegistry(self.journal)
        if self.tokens.journal is not self.journal or self.registry.journal is not self.journal:
            raise ValueError("Ledgers must share one journal")
        # Net collateral in custody per condition: split - merged - paid out
        self.locked_collateral: dict[str, int] = {}
        self.events: list[LedgerEvent] = []
        self._lock = RLock()

    @classmethod
    def create(cls, custody: str = "ctf-custody", symbol: str = "USDC") -> PositionEngine:
        return cls(CollateralLedger(custody, Journal(), symbol=symbol))

    @contextmanager
    def atomic(self, op: str, **context: Any) -> Iterator[None]:
        """Serialize and make all-or-nothing. Rejections are logged, then re-raised."""
        with self._lock:
            outermost = not self.journal.active
            try:
                with self.journal.transaction():
                    yield
            except LedgerError as e:
                if outermost:
                    log.warning("ledger_op_rejected", op=op, code=e.code, error=str(e), **context)
                raise

    # --- Conditions ---

    def prepare_condition(self, oracle: str, question_id: str) -> Condition:
        with self.atomic("prepare", oracle=oracle, question_id=question_id):
            condition = self.registry.prepare(oracle, question_id)
            self.emit(
                EventKind.CONDITION_PREPARATION,
                condition.condition_id,
                oracle=condition.oracle,
                question_id=condition.question_id,
                outcome_slot_count=condition.outcome_slot_count,
            )
        return condition

    def resolve(self, condition_id: str, payouts: Sequence[int], caller: str) -> Condition:
        with self.atomic("resolve", condition_id=condition_id, caller=caller):
            condition = self.registry.resolve(condition_id, payouts, caller)
            self.emit(
                EventKind.CONDITION_RESOLUTION,
                condition.condition_id,
                account=condition.oracle,
                payouts=list(condition.resolution.payouts),
            )
        return condition

    # --- Positions ---

    def split(self, condition_id: str, holder: str, amount: int) -> None:
        """Lock `amount` collateral and mint `amount` of both outcomes to holder."""
        with self.atomic("split", condition_id=condition_id, holder=holder, amount=amount):
            check_amount(amount)
            cid = self.registry.get(condition_id).condition_id
            self.collateral.debit(holder, amount)
            for i in OUTCOMES:
                self.tokens.mint(cid, i, holder, amount)
            self._add_locked(cid, amount)
            self.emit(EventKind.POSITION_SPLIT, cid, account=holder, amount=amount)
        log.info("position_split", condition_id=cid, holder=holder, amount=amount)

    def merge(self, condition_id: str, holder: str, amount: int) -> None:
        """Burn `amount` of both outcomes and release `amount` collateral. No resolution needed."""
        with self.atomic("merge", condition_id=condition_id, holder=holder, amount=amount):
            check_amount(amount)
            cid = self.registry.get(condition_id).condition_id
            for i in OUTCOMES:
                self.tokens.burn(cid, i, holder, amount)
            self.collateral.credit(holder, amount)
            self._add_locked(cid, -amount)
            self.emit(EventKind.POSITIONS_MERGE, cid, account=holder, amount=amount)
        log.info("positions_merged", condition_id=cid, holder=holder, amount=amount)

    def transfer(self, condition_id: str, outcome_index: int, sender: str, recipient: str, amount: int) -> None:
        with self.atomic("transfer", condition_id=condition_id, sender=sender, recipient=recipient):
            check_amount(amount)
            cid = self.registry.get(condition_id).condition_id
            self.tokens.burn(cid, outcome_index, sender, amount)
            self.tokens.mint(cid, outcome_index, recipient, amount)
            self.emit(
                EventKind.TRANSFER_SINGLE,
                cid,
                account=sender,
                amount=amount,
                recipient=recipient,
                outcome_index=outcome_index,
            )
        log.info("outcome_transfer", condition_id=cid, outcome_index=outcome_index, sender=sender, recipient=recipient, amount=amount)

    def redeem(self, condition_id: str, holder: str) -> int:
        """Burn all of holder's outcome balances and pay out by the resolved weights.

        Payout is sum(floor(balance_i * w_i / sum(w))); rounding dust stays in
        custody. A holder with nothing to redeem gets 0, not an error, so a
        second redeem is a no-op.
        """
        with self.atomic("redeem", condition_id=condition_id, holder=holder):
            condition = self.registry.get(condition_id)
            cid = condition.condition_id
            if not isinstance(condition.resolution, Resolved):
                raise ConditionNotResolved(f"Condition not resolved: {cid}", condition_id=cid)
            weights = condition.resolution.payouts
            denominator = condition.resolution.denominator
            payout = 0
            burned = []
            for i in OUTCOMES:
                balance = self.tokens.balance_of(cid, i, holder)
                burned.append(balance)
                if balance:
                    payout += balance * weights[i] // denominator
                    self.tokens.burn(cid, i, holder, balance)
            if payout:
                self.collateral.credit(holder, payout)
                self._add_locked(cid, -payout)
            if any(burned):
                self.emit(EventKind.PAYOUT_REDEMPTION, cid, account=holder, amount=payout, burned=burned)
        if any(burned):
            log.info("payout_redeemed", condition_id=cid, holder=holder, burned=burned, payout=payout)
        else:
            log.debug("redeem_noop", condition_id=cid, holder=holder)
        return payout

    # --- Queries ---
    # Reads take the engine lock so they never see half of a transaction.

    @contextmanager
    def reading(self) -> Iterator[None]:
        """Hold the engine lock across several reads that must agree."""
        with self._lock:
            yield

    def condition_state(self, condition_id: str) -> ConditionState:
        with self._lock:
            return self.registry.state(condition_id)

    def balance_of(self, condition_id: str, outcome_index: int, holder: str) -> int:
        with self._lock:
            cid = self.registry.get(condition_id).condition_id
            return self.tokens.balance_of(cid, outcome_index, holder)

    def total_supply(self, condition_id: str, outcome_index: int) -> int:
        with self._lock:
            cid = self.registry.get(condition_id).condition_id
            return self.tokens.total_supply(cid, outcome_index)

    def positions(self, condition_id: str | None = None, holder: str | None = None) -> list[Position]:
        with self._lock:
            if condition_id is not None:
                condition_id = self.registry.get(condition_id).condition_id
            return self.tokens.positions(condition_id, holder)

    def locked(self, condition_id: str) -> int:
        with self._lock:
            return self.locked_collateral.get(self.registry.get(condition_id).condition_id, 0)

    def check_conservation(self, condition_id: str) -> bool:
        """Outstanding outcome supply is fully backed by the collateral locked for it."""
        with self._lock:
            condition = self.registry.get(condition_id)
            cid = condition.condition_id
            supply = [self.tokens.total_supply(cid, i) for i in OUTCOMES]
            locked = self.locked_collateral.get(cid, 0)
        if locked < 0:
            return False
        if isinstance(condition.resolution, Resolved):
            claims = sum(s * w for s, w in zip(supply, condition.resolution.payouts))
            return locked * condition.resolution.denominator >= claims
        return supply[0] == supply[1] == locked

    def events_for(self, condition_id: str | None = None, limit: int | None = None) -> list[LedgerEvent]:
        with self._lock:
            if condition_id is not None:
                condition_id = self.registry.get(condition_id).condition_id
            events = [e for e in self.events if condition_id is None or e.condition_id == condition_id]
        return events[-limit:] if limit else events

    # --- Internals ---

    def _add_locked(self, condition_id: str, delta: int) -> None:
        self.journal.write(self.locked_collateral, condition_id, self.locked_collateral.get(condition_id, 0) + delta)

    def emit(self, kind: EventKind, condition_id: str, account: str | None = None, amount: int = 0, **payload: Any) -> LedgerEvent:
        seq = self.events[-1].seq + 1 if self.events else 1
        event = LedgerEvent(seq=seq, kind=kind, condition_id=condition_id, account=account, amount=amount, payload=payload)
        self.journal.append(self.events, event)
        return event

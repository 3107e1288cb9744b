"""Outcome token ledger - balances keyed by (condition_id, outcome_index, holder)."""

from __future__ import annotations

from ctfmarket.errors import InsufficientBalance, InvalidOutcome, check_amount
from ctfmarket.ids import OUTCOME_SLOT_COUNT
from ctfmarket.ledger.journal import Journal
from ctfmarket.models import Position, PositionKey


class OutcomeTokenLedger:
    """Multi-asset balance ledger. Zero balances are not stored."""

    def __init__(self, journal: Journal | None = None) -> None:
        self.journal = journal or Journal()
        self.balances: dict[PositionKey, int] = {}
        self.supply: dict[tuple[str, int], int] = {}

    def balance_of(self, condition_id: str, outcome_index: int, holder: str) -> int:
        _check_index(outcome_index)
        return self.balances.get(PositionKey(condition_id, outcome_index, holder), 0)

    def total_supply(self, condition_id: str, outcome_index: int) -> int:
        _check_index(outcome_index)
        return self.supply.get((condition_id, outcome_index), 0)

    def mint(self, condition_id: str, outcome_index: int, holder: str, amount: int) -> None:
        _check_index(outcome_index)
        check_amount(amount)
        key = PositionKey(condition_id, outcome_index, holder)
        self.journal.write(self.balances, key, self.balances.get(key, 0) + amount)
        self.journal.write(self.supply, key[:2], self.supply.get(key[:2], 0) + amount)

    def burn(self, condition_id: str, outcome_index: int, holder: str, amount: int) -> None:
        _check_index(outcome_index)
        check_amount(amount)
        key = PositionKey(condition_id, outcome_index, holder)
        balance = self.balances.get(key, 0)
        if balance < amount:
            raise InsufficientBalance(
                f"{holder} holds {balance} of outcome {outcome_index}, needs {amount}",
                condition_id=condition_id, outcome_index=outcome_index, balance=balance, amount=amount,
            )
        self.journal.write(self.balances, key, balance - amount)
        self.journal.write(self.supply, key[:2], self.supply.get(key[:2], 0) - amount)

    def holders(self, condition_id: str, outcome_index: int) -> list[str]:
        _check_index(outcome_index)
        return sorted(k.holder for k in self.balances if k.condition_id == condition_id and k.outcome_index == outcome_index)

    def positions(self, condition_id: str | None = None, holder: str | None = None) -> list[Position]:
        """Non-zero positions, optionally filtered, in key order."""
        out = []
        for key in sorted(self.balances):
            if condition_id is not None and key.condition_id != condition_id:
                continue
            if holder is not None and key.holder != holder:
                continue
            out.append(
                Position(
                    condition_id=key.condition_id,
                    outcome_index=key.outcome_index,
                    holder=key.holder,
                    balance=self.balances[key],
                )
            )
        return out

    def load(self, positions: list[Position]) -> None:
        """Replace all balances (used when restoring persisted state)."""
        self.balances = {}
        self.supply = {}
        for p in positions:
            if p.balance <= 0:
                continue
            self.balances[p.key] = p.balance
            self.supply[p.key[:2]] = self.supply.get(p.key[:2], 0) + p.balance


def _check_index(outcome_index: int) -> None:
    if outcome_index not in range(OUTCOME_SLOT_COUNT):
        raise InvalidOutcome(f"Outcome index must be 0 or 1, got {outcome_index!r}", outcome_index=outcome_index)

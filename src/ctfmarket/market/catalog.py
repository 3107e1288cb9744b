"""Binary market catalog - owner-created markets, one condition per question.

Thin wrapper over the position engine: it derives the condition id from the
catalog's oracle and the question id, and exposes mint/merge/redeem per market.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ctfmarket import ids
from ctfmarket.engine import PositionEngine
from ctfmarket.errors import InvalidIdentifier, MarketExists, NotOwner, UnknownMarket
from ctfmarket.models import Condition, EventKind, MarketRecord

if TYPE_CHECKING:
    from ctfmarket.config import Settings

log = structlog.get_logger(__name__)

# Winning side -> all-or-nothing payout weights
OUTCOME_PAYOUTS = {0: (1, 0), 1: (0, 1)}


class MarketCatalog:
    def __init__(self, engine: PositionEngine, owner: str, oracle: str) -> None:
        self.engine = engine
        self.owner = ids.to_address(owner)
        self.oracle = ids.to_address(oracle)
        self._markets: dict[str, MarketRecord] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> MarketCatalog:
        """Empty catalog over a fresh engine, wired from config."""
        engine = PositionEngine.create(custody=settings.custody_account, symbol=settings.collateral_symbol)
        return cls(engine, owner=settings.owner, oracle=settings.oracle)

    def create_market(self, question_id: str, caller: str, description: str = "") -> MarketRecord:
        """Owner only. Prepares the condition (oracle, question_id, 2) and records the market."""
        if not isinstance(caller, str) or caller.lower() != self.owner.lower():
            raise NotOwner(f"{caller} is not the market owner")
        qid = ids.normalize_id(question_id)
        with self.engine.atomic("create_market", question_id=qid):
            if qid in self._markets:
                raise MarketExists(f"Market already exists: {qid}", question_id=qid)
            condition = self.engine.prepare_condition(self.oracle, qid)
            market = MarketRecord(
                question_id=qid,
                condition_id=condition.condition_id,
                oracle=self.oracle,
                creator=self.owner,
                description=description,
            )
            self.engine.journal.write(self._markets, qid, market)
            self.engine.emit(EventKind.MARKET_CREATED, condition.condition_id, account=self.owner, question_id=qid, description=description)
        log.info("market_created", question_id=qid, condition_id=market.condition_id)
        return market

    def create_market_for_question(self, question: str, caller: str) -> MarketRecord:
        """Create a market whose question id is keccak256 of the question text."""
        return self.create_market(ids.question_id(question), caller, description=question)

    def get_market(self, question_id: str) -> MarketRecord:
        try:
            qid = ids.normalize_id(question_id)
        except InvalidIdentifier:
            qid = question_id
        market = self._markets.get(qid)
        if market is None:
            raise UnknownMarket(f"Unknown market: {question_id}", question_id=question_id)
        return market

    def markets(self) -> list[MarketRecord]:
        return sorted(self._markets.values(), key=lambda m: m.created_at)

    def condition(self, question_id: str) -> Condition:
        return self.engine.registry.get(self.get_market(question_id).condition_id)

    def mint_tokens(self, question_id: str, holder: str, amount: int) -> None:
        self.engine.split(self.get_market(question_id).condition_id, holder, amount)

    def merge_tokens(self, question_id: str, holder: str, amount: int) -> None:
        self.engine.merge(self.get_market(question_id).condition_id, holder, amount)

    def redeem(self, question_id: str, holder: str) -> int:
        return self.engine.redeem(self.get_market(question_id).condition_id, holder)

    def resolve_market(self, question_id: str, outcome: str | int, caller: str) -> Condition:
        """Oracle only. `outcome` is YES/NO (or 0/1); the winner is paid 1:1, the loser 0."""
        payouts = OUTCOME_PAYOUTS[ids.outcome_index(str(outcome))]
        return self.engine.resolve(self.get_market(question_id).condition_id, payouts, caller)

    def load(self, markets: list[MarketRecord]) -> None:
        self._markets = {m.question_id: m for m in markets}

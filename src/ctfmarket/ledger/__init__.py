"""Ledgers: collateral, outcome tokens, condition registry, and their shared undo journal."""

from ctfmarket.ledger.collateral import CollateralLedger
from ctfmarket.ledger.journal import Journal
from ctfmarket.ledger.outcome import OutcomeTokenLedger
from ctfmarket.ledger.registry import ConditionRegistry

__all__ = ["CollateralLedger", "ConditionRegistry", "Journal", "OutcomeTokenLedger"]

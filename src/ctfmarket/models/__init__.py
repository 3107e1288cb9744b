"""Canonical schema (Pydantic) - Condition, Position, MarketRecord, LedgerEvent."""

from ctfmarket.models.condition import Condition, ConditionState, Resolved, Unresolved
from ctfmarket.models.event import EventKind, LedgerEvent
from ctfmarket.models.market import MarketRecord
from ctfmarket.models.position import Position, PositionKey

__all__ = [
    "Condition",
    "ConditionState",
    "Resolved",
    "Unresolved",
    "Position",
    "PositionKey",
    "MarketRecord",
    "LedgerEvent",
    "EventKind",
]

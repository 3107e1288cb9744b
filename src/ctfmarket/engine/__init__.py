"""Position engine: the only component that mutates outcome balances and condition state."""

from ctfmarket.engine.positions import PositionEngine

__all__ = ["PositionEngine"]

"""Position - one holder's balance of one outcome of one condition."""

from __future__ import annotations

from typing import NamedTuple

from pydantic import BaseModel, Field


class PositionKey(NamedTuple):
    condition_id: str
    outcome_index: int
    holder: str


class Position(BaseModel):
    condition_id: str
    outcome_index: int = Field(..., ge=0, le=1)
    holder: str
    balance: int = Field(..., ge=0)  # collateral base units

    @property
    def key(self) -> PositionKey:
        return PositionKey(self.condition_id, self.outcome_index, self.holder)

"""Condition - a binary question bound to one oracle, resolved at most once."""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ConditionState(str, Enum):
    UNPREPARED = "unprepared"
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


class Unresolved(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["unresolved"] = "unresolved"


class Resolved(BaseModel):
    """Payout weights fixed by the oracle. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    state: Literal["resolved"] = "resolved"
    payouts: tuple[int, int]
    resolved_at: int = Field(default_factory=lambda: int(time.time() * 1000))  # ms epoch

    @property
    def denominator(self) -> int:
        return sum(self.payouts)


Resolution = Annotated[Union[Unresolved, Resolved], Field(discriminator="state")]


class Condition(BaseModel):
    condition_id: str
    oracle: str
    question_id: str
    outcome_slot_count: int = 2
    resolution: Resolution = Field(default_factory=Unresolved)
    prepared_at: int = Field(default_factory=lambda: int(time.time() * 1000))

    @property
    def state(self) -> ConditionState:
        if isinstance(self.resolution, Resolved):
            return ConditionState.RESOLVED
        return ConditionState.UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.state is ConditionState.RESOLVED

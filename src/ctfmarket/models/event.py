"""LedgerEvent - append-only record of every committed state change."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    CONDITION_PREPARATION = "condition_preparation"
    CONDITION_RESOLUTION = "condition_resolution"
    POSITION_SPLIT = "position_split"
    POSITIONS_MERGE = "positions_merge"
    TRANSFER_SINGLE = "transfer_single"
    PAYOUT_REDEMPTION = "payout_redemption"
    MARKET_CREATED = "market_created"


class LedgerEvent(BaseModel):
    seq: int
    kind: EventKind
    condition_id: str
    account: str | None = None
    amount: int = 0
    payload: dict[str, Any] = Field(default_factory=dict)
    ts_ms: int = Field(default_factory=lambda: int(time.time() * 1000))

"""MarketRecord - catalog entry mapping a question to its condition."""

from __future__ import annotations

import time

from pydantic import BaseModel, Field


class MarketRecord(BaseModel):
    """Administrative only; plays no part in the accounting."""

    question_id: str
    condition_id: str
    oracle: str
    creator: str
    description: str = ""
    created_at: int = Field(default_factory=lambda: int(time.time() * 1000))  # ms epoch

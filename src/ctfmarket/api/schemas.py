"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ctfmarket.models import LedgerEvent


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. already_resolved, unknown_condition")


# --- Markets ---
class CreateMarketRequest(BaseModel):
    question: str | None = Field(None, description="Question text; id = keccak256(text)")
    question_id: str | None = Field(None, description="Explicit bytes32 question id")
    caller: str = Field(..., description="Acting address; must be the catalog owner")


class MarketItem(BaseModel):
    question_id: str
    condition_id: str
    oracle: str
    creator: str
    description: str = ""
    state: str
    created_at: int


class MarketsListResponse(BaseModel):
    markets: list[MarketItem]
    total: int


# --- Conditions ---
class ConditionResponse(BaseModel):
    condition_id: str
    oracle: str
    question_id: str
    state: str
    payouts: list[int] | None = None
    supply: list[int] = Field(..., description="Outstanding supply per outcome index")
    locked: int = Field(..., description="Collateral held in custody for this condition")
    position_ids: list[str] = Field(..., description="ERC1155 token id per outcome (decimal string)")


class AmountRequest(BaseModel):
    holder: str
    amount: int = Field(..., description="Collateral base units")


class TransferRequest(BaseModel):
    outcome_index: int = Field(..., description="0 = YES, 1 = NO")
    sender: str
    recipient: str
    amount: int


class HolderRequest(BaseModel):
    holder: str


class ResolveRequest(BaseModel):
    payouts: list[int] = Field(..., description="Payout weights, e.g. [1, 0] for YES")
    caller: str = Field(..., description="Acting address; must be the condition's oracle")


class BalancesResponse(BaseModel):
    condition_id: str
    holder: str
    balances: list[int] = Field(..., description="Balance per outcome index")
    collateral: int


class RedeemResponse(BalancesResponse):
    payout: int


# --- Collateral ---
class CollateralRequest(BaseModel):
    account: str
    amount: int


class CollateralResponse(BaseModel):
    account: str
    symbol: str
    balance: int
    allowance: int = Field(..., description="Amount the custody account may pull on split")


# --- Events ---
class EventsResponse(BaseModel):
    events: list[LedgerEvent]
    total: int

"""FastAPI backend - HTTP surface over the market catalog and position engine."""

from __future__ import annotations

from contextlib import asynccontextmanager
from threading import Lock

import structlog
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ctfmarket import ids
from ctfmarket.api.schemas import (
    AmountRequest,
    BalancesResponse,
    CollateralRequest,
    CollateralResponse,
    ConditionResponse,
    CreateMarketRequest,
    ErrorResponse,
    EventsResponse,
    HealthResponse,
    HolderRequest,
    MarketItem,
    MarketsListResponse,
    RedeemResponse,
    ResolveRequest,
    TransferRequest,
)
from ctfmarket.config import Settings, get_settings
from ctfmarket.engine.positions import OUTCOMES
from ctfmarket.errors import InvalidIdentifier, LedgerError
from ctfmarket.market import MarketCatalog
from ctfmarket.models import MarketRecord, Resolved
from ctfmarket.storage import get_connection, init_schema, load_state, save_state

log = structlog.get_logger(__name__)

# Set by run_api() / use_catalog(); lifespan loads from DuckDB when unset.
_config_profile: str | None = None
_settings: Settings | None = None
_catalog: MarketCatalog | None = None
_db_path: str | None = None
# One DuckDB writer at a time
_persist_lock = Lock()


def use_catalog(catalog: MarketCatalog, settings: Settings | None = None, db_path: str | None = None) -> None:
    """Serve an existing catalog. With db_path=None nothing is persisted."""
    global _catalog, _settings, _db_path
    _catalog = catalog
    _settings = settings or Settings()
    _db_path = db_path


def _load_from_db() -> None:
    settings = get_settings(_config_profile)
    conn = get_connection(settings.db_path)
    try:
        init_schema(conn)
        catalog = load_state(conn, settings)
    finally:
        conn.close()
    use_catalog(catalog, settings, settings.db_path)
    log.info("api_state_loaded", db_path=settings.db_path, markets=len(catalog.markets()))


def _get_catalog() -> MarketCatalog:
    if _catalog is None:
        _load_from_db()
    return _catalog


def _persist() -> None:
    if _db_path is None or _catalog is None:
        return
    with _persist_lock:
        conn = get_connection(_db_path)
        try:
            init_schema(conn)
            save_state(conn, _catalog)
        finally:
            conn.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if _catalog is None:
        _load_from_db()
    yield


app = FastAPI(title="ctfmarket API", version="0.1.0", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return _error_json(exc.code, str(exc), exc.status_code)


ERROR_RESPONSES = {
    403: {"description": "Caller not allowed", "model": ErrorResponse},
    404: {"description": "Unknown market or condition", "model": ErrorResponse},
    409: {"description": "Invalid lifecycle state", "model": ErrorResponse},
    422: {"description": "Invalid amount, payouts or balance", "model": ErrorResponse},
}


def _market_item(catalog: MarketCatalog, m: MarketRecord) -> MarketItem:
    return MarketItem(
        question_id=m.question_id,
        condition_id=m.condition_id,
        oracle=m.oracle,
        creator=m.creator,
        description=m.description,
        state=catalog.engine.condition_state(m.condition_id).value,
        created_at=m.created_at,
    )


def _condition_response(catalog: MarketCatalog, condition_id: str) -> ConditionResponse:
    engine = catalog.engine
    token = _settings.collateral_token_address if _settings else Settings().collateral_token_address
    with engine.reading():
        condition = engine.registry.get(condition_id)
        cid = condition.condition_id
        return ConditionResponse(
            condition_id=cid,
            oracle=condition.oracle,
            question_id=condition.question_id,
            state=condition.state.value,
            payouts=list(condition.resolution.payouts) if isinstance(condition.resolution, Resolved) else None,
            supply=[engine.tokens.total_supply(cid, i) for i in OUTCOMES],
            locked=engine.locked(cid),
            position_ids=[str(ids.position_id(token, cid, i)) for i in OUTCOMES],
        )


def _balances(catalog: MarketCatalog, condition_id: str, holder: str) -> dict:
    engine = catalog.engine
    with engine.reading():
        cid = engine.registry.get(condition_id).condition_id
        return {
            "condition_id": cid,
            "holder": holder,
            "balances": [engine.tokens.balance_of(cid, i, holder) for i in OUTCOMES],
            "collateral": engine.collateral.balance_of(holder),
        }


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


# --- Markets ---


@app.get("/markets", response_model=MarketsListResponse)
def markets_list(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> MarketsListResponse:
    """List markets with optional limit/offset."""
    catalog = _get_catalog()
    with catalog.engine.reading():
        all_markets = catalog.markets()
        items = [_market_item(catalog, m) for m in all_markets[offset : offset + limit]]
    return MarketsListResponse(markets=items, total=len(all_markets))


@app.post("/markets", response_model=MarketItem, status_code=201, responses=ERROR_RESPONSES)
def markets_create(body: CreateMarketRequest) -> MarketItem:
    """Owner only. Prepares the market's condition with the catalog oracle."""
    catalog = _get_catalog()
    if body.question_id:
        market = catalog.create_market(body.question_id, body.caller, description=body.question or "")
    elif body.question:
        market = catalog.create_market_for_question(body.question, body.caller)
    else:
        raise InvalidIdentifier("Either question or question_id is required")
    _persist()
    return _market_item(catalog, market)


@app.get("/markets/{question_id}", response_model=MarketItem, responses=ERROR_RESPONSES)
def market_detail(question_id: str) -> MarketItem:
    catalog = _get_catalog()
    return _market_item(catalog, catalog.get_market(question_id))


# --- Conditions ---


@app.get("/conditions/{condition_id}", response_model=ConditionResponse, responses=ERROR_RESPONSES)
def condition_detail(condition_id: str) -> ConditionResponse:
    return _condition_response(_get_catalog(), condition_id)


@app.get("/conditions/{condition_id}/balances/{holder}", response_model=BalancesResponse, responses=ERROR_RESPONSES)
def condition_balances(condition_id: str, holder: str) -> BalancesResponse:
    return BalancesResponse(**_balances(_get_catalog(), condition_id, ids.to_address(holder)))


@app.post("/conditions/{condition_id}/split", response_model=BalancesResponse, responses=ERROR_RESPONSES)
def condition_split(condition_id: str, body: AmountRequest) -> BalancesResponse:
    catalog = _get_catalog()
    holder = ids.to_address(body.holder)
    catalog.engine.split(condition_id, holder, body.amount)
    _persist()
    return BalancesResponse(**_balances(catalog, condition_id, holder))


@app.post("/conditions/{condition_id}/merge", response_model=BalancesResponse, responses=ERROR_RESPONSES)
def condition_merge(condition_id: str, body: AmountRequest) -> BalancesResponse:
    catalog = _get_catalog()
    holder = ids.to_address(body.holder)
    catalog.engine.merge(condition_id, holder, body.amount)
    _persist()
    return BalancesResponse(**_balances(catalog, condition_id, holder))


@app.post("/conditions/{condition_id}/transfer", response_model=BalancesResponse, responses=ERROR_RESPONSES)
def condition_transfer(condition_id: str, body: TransferRequest) -> BalancesResponse:
    """Move outcome tokens; returns the sender's balances."""
    catalog = _get_catalog()
    sender = ids.to_address(body.sender)
    catalog.engine.transfer(condition_id, body.outcome_index, sender, ids.to_address(body.recipient), body.amount)
    _persist()
    return BalancesResponse(**_balances(catalog, condition_id, sender))


@app.post("/conditions/{condition_id}/redeem", response_model=RedeemResponse, responses=ERROR_RESPONSES)
def condition_redeem(condition_id: str, body: HolderRequest) -> RedeemResponse:
    """Redeem after resolution. Redeeming with nothing left returns payout 0."""
    catalog = _get_catalog()
    holder = ids.to_address(body.holder)
    payout = catalog.engine.redeem(condition_id, holder)
    _persist()
    return RedeemResponse(payout=payout, **_balances(catalog, condition_id, holder))


@app.post("/conditions/{condition_id}/resolve", response_model=ConditionResponse, responses=ERROR_RESPONSES)
def condition_resolve(condition_id: str, body: ResolveRequest) -> ConditionResponse:
    """Oracle only, exactly once."""
    catalog = _get_catalog()
    catalog.engine.resolve(condition_id, body.payouts, body.caller)
    _persist()
    return _condition_response(catalog, condition_id)


# --- Collateral ---


def _collateral_response(catalog: MarketCatalog, account: str) -> CollateralResponse:
    collateral = catalog.engine.collateral
    with catalog.engine.reading():
        return CollateralResponse(
            account=account,
            symbol=collateral.symbol,
            balance=collateral.balance_of(account),
            allowance=collateral.allowance(account, collateral.custody),
        )


@app.post("/collateral/mint", response_model=CollateralResponse, responses=ERROR_RESPONSES)
def collateral_mint(body: CollateralRequest) -> CollateralResponse:
    """Faucet for the dev/test collateral token."""
    catalog = _get_catalog()
    account = ids.to_address(body.account)
    with catalog.engine.atomic("collateral_mint", account=account):
        catalog.engine.collateral.mint(account, body.amount)
    _persist()
    return _collateral_response(catalog, account)


@app.post("/collateral/approve", response_model=CollateralResponse, responses=ERROR_RESPONSES)
def collateral_approve(body: CollateralRequest) -> CollateralResponse:
    """Set the allowance the custody account may pull on split."""
    catalog = _get_catalog()
    account = ids.to_address(body.account)
    collateral = catalog.engine.collateral
    with catalog.engine.atomic("collateral_approve", account=account):
        collateral.approve(account, collateral.custody, body.amount)
    _persist()
    return _collateral_response(catalog, account)


@app.get("/collateral/{account}", response_model=CollateralResponse, responses=ERROR_RESPONSES)
def collateral_detail(account: str) -> CollateralResponse:
    return _collateral_response(_get_catalog(), ids.to_address(account))


# --- Events ---


@app.get("/events", response_model=EventsResponse)
def events_list(
    condition_id: str | None = Query(None, description="Only events of this condition"),
    limit: int = Query(100, ge=1, le=1000),
) -> EventsResponse:
    """Most recent ledger events, oldest first."""
    events = _get_catalog().engine.events_for(condition_id, limit=limit)
    return EventsResponse(events=events, total=len(events))


def run_api(host: str = "127.0.0.1", port: int = 8000, profile: str | None = None) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn

    uvicorn.run("ctfmarket.api.main:app", host=host, port=port, reload=False)

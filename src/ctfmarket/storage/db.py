"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

# Amounts are HUGEINT: collateral base units can exceed 2**63 with 18-decimal tokens.
SCHEMA_SQL = """
-- Condition registry (one row per prepared condition)
CREATE TABLE IF NOT EXISTS conditions (
    condition_id        VARCHAR PRIMARY KEY,
    oracle              VARCHAR NOT NULL,
    question_id         VARCHAR NOT NULL,
    outcome_slot_count  INTEGER NOT NULL,
    state               VARCHAR NOT NULL,
    payouts             JSON,
    resolved_at         BIGINT,
    prepared_at         BIGINT NOT NULL
);

-- Outcome token balances (zero balances are not stored)
CREATE TABLE IF NOT EXISTS positions (
    condition_id    VARCHAR NOT NULL,
    outcome_index   INTEGER NOT NULL,
    holder          VARCHAR NOT NULL,
    balance         HUGEINT NOT NULL,
    PRIMARY KEY (condition_id, outcome_index, holder)
);

-- Collateral ledger
CREATE TABLE IF NOT EXISTS collateral_balances (
    account         VARCHAR PRIMARY KEY,
    balance         HUGEINT NOT NULL
);

CREATE TABLE IF NOT EXISTS collateral_allowances (
    owner           VARCHAR NOT NULL,
    spender         VARCHAR NOT NULL,
    amount          HUGEINT NOT NULL,
    PRIMARY KEY (owner, spender)
);

-- Net collateral held in custody per condition
CREATE TABLE IF NOT EXISTS condition_locked (
    condition_id    VARCHAR PRIMARY KEY,
    amount          HUGEINT NOT NULL
);

-- Market catalog (question -> condition)
CREATE TABLE IF NOT EXISTS markets (
    question_id     VARCHAR PRIMARY KEY,
    condition_id    VARCHAR NOT NULL,
    oracle          VARCHAR NOT NULL,
    creator         VARCHAR NOT NULL,
    description     VARCHAR,
    created_at      BIGINT NOT NULL
);

-- Ledger event log (append-only)
CREATE TABLE IF NOT EXISTS ledger_events (
    seq             BIGINT PRIMARY KEY,
    kind            VARCHAR NOT NULL,
    condition_id    VARCHAR NOT NULL,
    account         VARCHAR,
    amount          HUGEINT NOT NULL,
    payload         JSON,
    ts_ms           BIGINT NOT NULL
);
"""

# Tables rewritten wholesale on every save; ledger_events is append-only.
STATE_TABLES = (
    "conditions",
    "positions",
    "collateral_balances",
    "collateral_allowances",
    "condition_locked",
    "markets",
)


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" opens an in-memory database."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise

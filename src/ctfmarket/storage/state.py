"""Persist and restore the whole exchange (catalog, engine, ledgers) in DuckDB."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog

from ctfmarket.market import MarketCatalog
from ctfmarket.models import Condition, LedgerEvent, MarketRecord, Position, Resolved, Unresolved
from ctfmarket.storage.db import STATE_TABLES

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

    from ctfmarket.config import Settings

log = structlog.get_logger(__name__)


def save_state(conn: DuckDBPyConnection, catalog: MarketCatalog) -> int:
    """Rewrite state tables and append unsaved events in one DuckDB transaction.
    Returns the number of events appended.

    The engine lock is held from snapshot to COMMIT, so concurrent saves commit
    in the order their snapshots were taken."""
    engine = catalog.engine
    with engine.reading():
        rows = _state_rows(catalog)
        conn.execute("BEGIN TRANSACTION")
        try:
            for table in STATE_TABLES:
                conn.execute(f"DELETE FROM {table}")
            for table, (sql, values) in rows.items():
                if values:
                    conn.executemany(sql, values)
            last_seq = conn.execute("SELECT coalesce(max(seq), 0) FROM ledger_events").fetchone()[0]
            new_events = [e for e in engine.events if e.seq > last_seq]
            if new_events:
                conn.executemany(
                    "INSERT INTO ledger_events (seq, kind, condition_id, account, amount, payload, ts_ms) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    [
                        [e.seq, e.kind.value, e.condition_id, e.account, e.amount, json.dumps(e.payload), e.ts_ms]
                        for e in new_events
                    ],
                )
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise
    log.debug("state_saved", conditions=len(rows["conditions"][1]), events_appended=len(new_events))
    return len(new_events)


def load_state(conn: DuckDBPyConnection, settings: Settings) -> MarketCatalog:
    """Rebuild a MarketCatalog (and its engine) from the database."""
    catalog = MarketCatalog.from_settings(settings)
    engine = catalog.engine

    conditions = []
    for cid, oracle, qid, slots, state, payouts, resolved_at, prepared_at in conn.execute(
        "SELECT condition_id, oracle, question_id, outcome_slot_count, state, payouts, resolved_at, prepared_at FROM conditions"
    ).fetchall():
        if state == "resolved":
            resolution: Resolved | Unresolved = Resolved(payouts=tuple(_json(payouts)), resolved_at=resolved_at)
        else:
            resolution = Unresolved()
        conditions.append(
            Condition(
                condition_id=cid,
                oracle=oracle,
                question_id=qid,
                outcome_slot_count=slots,
                resolution=resolution,
                prepared_at=prepared_at,
            )
        )
    engine.registry.load(sorted(conditions, key=lambda c: c.prepared_at))

    engine.tokens.load(
        [
            Position(condition_id=r[0], outcome_index=r[1], holder=r[2], balance=int(r[3]))
            for r in conn.execute("SELECT condition_id, outcome_index, holder, balance FROM positions").fetchall()
        ]
    )
    engine.collateral.balances = {
        r[0]: int(r[1]) for r in conn.execute("SELECT account, balance FROM collateral_balances").fetchall()
    }
    engine.collateral.allowances = {
        (r[0], r[1]): int(r[2])
        for r in conn.execute("SELECT owner, spender, amount FROM collateral_allowances").fetchall()
    }
    engine.locked_collateral = {
        r[0]: int(r[1]) for r in conn.execute("SELECT condition_id, amount FROM condition_locked").fetchall()
    }
    engine.events = [
        LedgerEvent(
            seq=r[0],
            kind=r[1],
            condition_id=r[2],
            account=r[3],
            amount=int(r[4]),
            payload=_json(r[5]) or {},
            ts_ms=r[6],
        )
        for r in conn.execute(
            "SELECT seq, kind, condition_id, account, amount, payload, ts_ms FROM ledger_events ORDER BY seq"
        ).fetchall()
    ]
    catalog.load(
        [
            MarketRecord(
                question_id=r[0],
                condition_id=r[1],
                oracle=r[2],
                creator=r[3],
                description=r[4] or "",
                created_at=r[5],
            )
            for r in conn.execute(
                "SELECT question_id, condition_id, oracle, creator, description, created_at FROM markets ORDER BY created_at"
            ).fetchall()
        ]
    )
    log.debug("state_loaded", conditions=len(conditions), events=len(engine.events))
    return catalog


def _state_rows(catalog: MarketCatalog) -> dict[str, tuple[str, list[list[Any]]]]:
    engine = catalog.engine
    conditions = []
    for c in engine.registry.conditions():
        resolved = c.resolution if isinstance(c.resolution, Resolved) else None
        conditions.append(
            [
                c.condition_id,
                c.oracle,
                c.question_id,
                c.outcome_slot_count,
                c.state.value,
                json.dumps(list(resolved.payouts)) if resolved else None,
                resolved.resolved_at if resolved else None,
                c.prepared_at,
            ]
        )
    return {
        "conditions": (
            "INSERT INTO conditions VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            conditions,
        ),
        "positions": (
            "INSERT INTO positions VALUES (?, ?, ?, ?)",
            [[p.condition_id, p.outcome_index, p.holder, p.balance] for p in engine.tokens.positions()],
        ),
        "collateral_balances": (
            "INSERT INTO collateral_balances VALUES (?, ?)",
            [[a, b] for a, b in sorted(engine.collateral.balances.items())],
        ),
        "collateral_allowances": (
            "INSERT INTO collateral_allowances VALUES (?, ?, ?)",
            [[o, s, a] for (o, s), a in sorted(engine.collateral.allowances.items())],
        ),
        "condition_locked": (
            "INSERT INTO condition_locked VALUES (?, ?)",
            [[c, a] for c, a in sorted(engine.locked_collateral.items())],
        ),
        "markets": (
            "INSERT INTO markets VALUES (?, ?, ?, ?, ?, ?)",
            [[m.question_id, m.condition_id, m.oracle, m.creator, m.description, m.created_at] for m in catalog.markets()],
        ),
    }


def _json(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value)
    return value

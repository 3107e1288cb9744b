"""Shared CLI plumbing: load state, run one operation, save; token-unit amounts."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation

import typer

from ctfmarket.errors import InvalidAmount, LedgerError
from ctfmarket.market import MarketCatalog
from ctfmarket.storage import get_connection, init_schema, load_state, save_state


@contextmanager
def ledger_session(ctx: typer.Context, write: bool = True) -> Iterator[MarketCatalog]:
    """Yield the persisted catalog; save it back if the block succeeds and write=True.
    LedgerErrors become a message on stderr and exit code 1."""
    settings = ctx.obj["settings"]
    conn = get_connection(settings.db_path)
    init_schema(conn)
    try:
        catalog = load_state(conn, settings)
        yield catalog
        if write:
            save_state(conn, catalog)
    except LedgerError as e:
        typer.echo(f"Error [{e.code}]: {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        conn.close()


def parse_amount(text: str, decimals: int) -> int:
    """'1.5' with 6 decimals -> 1500000. Sub-unit precision is rejected, not rounded."""
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise InvalidAmount(f"Not a number: {text!r}") from e
    if not value.is_finite():
        raise InvalidAmount(f"Not a finite number: {text!r}")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(f"{text} has more than {decimals} decimal places")
    return int(scaled)


def format_amount(amount: int, decimals: int) -> str:
    return f"{Decimal(amount).scaleb(-decimals):f}"

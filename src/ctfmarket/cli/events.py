"""Events subcommand: list the ledger event log."""

from __future__ import annotations

import typer

from ctfmarket.cli.common import ledger_session

app = typer.Typer(help="Ledger event log")


@app.command("list")
def list_events(
    ctx: typer.Context,
    market: str | None = typer.Option(None, "--market", "-m", help="Only events of this market"),
    limit: int = typer.Option(20, "--limit", "-n", help="Most recent N events"),
) -> None:
    """Show the most recent ledger events."""
    with ledger_session(ctx, write=False) as catalog:
        condition_id = catalog.get_market(market).condition_id if market else None
        events = catalog.engine.events_for(condition_id, limit=limit)
    for e in events:
        typer.echo(f"  #{e.seq:<5} {e.kind.value:<22} {e.condition_id[:12]}...  {e.account or '-'}  {e.amount}")
    typer.echo(f"Shown: {len(events)} events")

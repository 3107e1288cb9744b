"""Oracle subcommand: resolve."""

from __future__ import annotations

import typer

from ctfmarket import ids
from ctfmarket.cli.common import ledger_session
from ctfmarket.market import OUTCOME_PAYOUTS

app = typer.Typer(help="Oracle resolution")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market: str = typer.Option(..., "--market", "-m", help="Question id of the market"),
    outcome: str | None = typer.Option(None, "--outcome", "-o", help="Winning side: YES or NO"),
    payouts: str | None = typer.Option(None, "--payouts", help="Explicit weights, e.g. '1,0'"),
    caller: str | None = typer.Option(None, "--caller", help="Acting address (default: configured oracle)"),
) -> None:
    """Report the outcome. A condition can be resolved only once."""
    if (outcome is None) == (payouts is None):
        typer.echo("Exactly one of --outcome or --payouts is required", err=True)
        raise typer.Exit(1)
    settings = ctx.obj["settings"]
    with ledger_session(ctx) as catalog:
        caller = caller or settings.oracle
        if outcome is not None:
            weights = OUTCOME_PAYOUTS[ids.outcome_index(outcome)]
        else:
            try:
                weights = tuple(int(w) for w in payouts.split(","))
            except ValueError:
                typer.echo(f"Invalid --payouts: {payouts!r}", err=True)
                raise typer.Exit(1) from None
        condition = catalog.engine.resolve(catalog.get_market(market).condition_id, weights, caller)
    typer.echo(f"Resolved {condition.condition_id} with payouts {list(weights)}")

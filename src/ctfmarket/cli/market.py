"""Market subcommand: create, list, show."""

from __future__ import annotations

import typer

from ctfmarket.cli.common import format_amount, ledger_session
from ctfmarket.engine.positions import OUTCOMES

app = typer.Typer(help="Market catalog")


@app.command("create")
def create(
    ctx: typer.Context,
    question: str | None = typer.Option(None, "--question", "-q", help="Question text (id = keccak256 of text)"),
    question_id: str | None = typer.Option(None, "--question-id", help="Explicit bytes32 question id"),
    caller: str | None = typer.Option(None, "--caller", help="Acting address (default: configured owner)"),
) -> None:
    """Create a binary market and prepare its condition."""
    if not question and not question_id:
        typer.echo("Either --question or --question-id is required", err=True)
        raise typer.Exit(1)
    settings = ctx.obj["settings"]
    with ledger_session(ctx) as catalog:
        caller = caller or settings.owner
        if question_id:
            market = catalog.create_market(question_id, caller, description=question or "")
        else:
            market = catalog.create_market_for_question(question, caller)
    typer.echo(f"Question id:  {market.question_id}")
    typer.echo(f"Condition id: {market.condition_id}")
    typer.echo(f"Oracle:       {market.oracle}")


@app.command("list")
def list_markets(ctx: typer.Context) -> None:
    """List markets in the catalog."""
    with ledger_session(ctx, write=False) as catalog:
        markets = catalog.markets()
        for m in markets:
            state = catalog.engine.condition_state(m.condition_id).value
            typer.echo(f"  {m.question_id[:18]}...  {state:<10}  {m.description[:60]}")
    typer.echo(f"Total: {len(markets)} markets")


@app.command("show")
def show(ctx: typer.Context, question_id: str = typer.Argument(..., help="Question id")) -> None:
    """Show a market's condition, payouts and outstanding supply."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx, write=False) as catalog:
        market = catalog.get_market(question_id)
        condition = catalog.condition(question_id)
        engine = catalog.engine
        typer.echo(f"Question:     {market.description or '-'}")
        typer.echo(f"Question id:  {market.question_id}")
        typer.echo(f"Condition id: {condition.condition_id}")
        typer.echo(f"Oracle:       {condition.oracle}")
        typer.echo(f"State:        {condition.state.value}")
        if condition.is_resolved:
            typer.echo(f"Payouts:      {list(condition.resolution.payouts)}")
        for i in OUTCOMES:
            supply = engine.tokens.total_supply(condition.condition_id, i)
            typer.echo(f"Supply[{i}]:    {format_amount(supply, decimals)}")
        typer.echo(f"Locked:       {format_amount(engine.locked(condition.condition_id), decimals)}")

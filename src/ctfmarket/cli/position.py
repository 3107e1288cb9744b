"""Position subcommand: split, merge, transfer, redeem, balance. Amounts are in token units."""

from __future__ import annotations

import typer

from ctfmarket import ids
from ctfmarket.cli.common import format_amount, ledger_session, parse_amount
from ctfmarket.engine.positions import OUTCOMES

app = typer.Typer(help="Split, merge, transfer and redeem outcome positions")

MARKET_OPT = typer.Option(..., "--market", "-m", help="Question id of the market")
HOLDER_OPT = typer.Option(..., "--holder", help="Holder address")
AMOUNT_OPT = typer.Option(..., "--amount", "-a", help="Amount in collateral units (e.g. 12.5)")


@app.command("split")
def split(ctx: typer.Context, market: str = MARKET_OPT, holder: str = HOLDER_OPT, amount: str = AMOUNT_OPT) -> None:
    """Lock collateral and mint both outcome tokens."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx) as catalog:
        catalog.mint_tokens(market, ids.to_address(holder), parse_amount(amount, decimals))
    typer.echo(f"Split {amount} into YES + NO for {holder}")


@app.command("merge")
def merge(ctx: typer.Context, market: str = MARKET_OPT, holder: str = HOLDER_OPT, amount: str = AMOUNT_OPT) -> None:
    """Burn equal YES + NO and get the collateral back."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx) as catalog:
        catalog.merge_tokens(market, ids.to_address(holder), parse_amount(amount, decimals))
    typer.echo(f"Merged {amount} YES + NO back to collateral for {holder}")


@app.command("transfer")
def transfer(
    ctx: typer.Context,
    market: str = MARKET_OPT,
    outcome: str = typer.Option(..., "--outcome", "-o", help="YES or NO"),
    sender: str = typer.Option(..., "--from", help="Sender address"),
    recipient: str = typer.Option(..., "--to", help="Recipient address"),
    amount: str = AMOUNT_OPT,
) -> None:
    """Move outcome tokens between holders."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx) as catalog:
        condition_id = catalog.get_market(market).condition_id
        catalog.engine.transfer(
            condition_id,
            ids.outcome_index(outcome),
            ids.to_address(sender),
            ids.to_address(recipient),
            parse_amount(amount, decimals),
        )
    typer.echo(f"Transferred {amount} {outcome.upper()} from {sender} to {recipient}")


@app.command("redeem")
def redeem(ctx: typer.Context, market: str = MARKET_OPT, holder: str = HOLDER_OPT) -> None:
    """Burn all outcome tokens of a resolved market for collateral."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx) as catalog:
        payout = catalog.redeem(market, ids.to_address(holder))
    typer.echo(f"Redeemed: payout {format_amount(payout, decimals)}")


@app.command("balance")
def balance(ctx: typer.Context, market: str = MARKET_OPT, holder: str = HOLDER_OPT) -> None:
    """Show YES/NO balances for a holder."""
    decimals = ctx.obj["settings"].collateral_decimals
    with ledger_session(ctx, write=False) as catalog:
        condition_id = catalog.get_market(market).condition_id
        address = ids.to_address(holder)
        for i in OUTCOMES:
            bal = catalog.engine.balance_of(condition_id, i, address)
            typer.echo(f"{ids.OUTCOME_NAMES[i]}: {format_amount(bal, decimals)}")

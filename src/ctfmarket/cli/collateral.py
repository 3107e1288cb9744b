"""Collateral subcommand: mint (faucet), approve, balance."""

from __future__ import annotations

import typer

from ctfmarket import ids
from ctfmarket.cli.common import format_amount, ledger_session, parse_amount

app = typer.Typer(help="Collateral token balances and allowances")


@app.command("mint")
def mint(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account", help="Recipient address"),
    amount: str = typer.Option(..., "--amount", "-a", help="Amount in collateral units"),
) -> None:
    """Faucet: credit test collateral to an account."""
    settings = ctx.obj["settings"]
    with ledger_session(ctx) as catalog:
        catalog.engine.collateral.mint(ids.to_address(account), parse_amount(amount, settings.collateral_decimals))
    typer.echo(f"Minted {amount} {settings.collateral_symbol} to {account}")


@app.command("approve")
def approve(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account", help="Owner address"),
    amount: str = typer.Option(..., "--amount", "-a", help="Allowance in collateral units"),
) -> None:
    """Allow the engine's custody account to pull collateral on split."""
    settings = ctx.obj["settings"]
    with ledger_session(ctx) as catalog:
        collateral = catalog.engine.collateral
        collateral.approve(ids.to_address(account), collateral.custody, parse_amount(amount, settings.collateral_decimals))
    typer.echo(f"Approved {amount} {settings.collateral_symbol} for {account}")


@app.command("balance")
def balance(ctx: typer.Context, account: str = typer.Option(..., "--account", help="Address")) -> None:
    """Show collateral balance and allowance to custody."""
    settings = ctx.obj["settings"]
    with ledger_session(ctx, write=False) as catalog:
        collateral = catalog.engine.collateral
        address = ids.to_address(account)
        bal = collateral.balance_of(address)
        allowed = collateral.allowance(address, collateral.custody)
    typer.echo(f"Balance:   {format_amount(bal, settings.collateral_decimals)} {settings.collateral_symbol}")
    typer.echo(f"Allowance: {format_amount(allowed, settings.collateral_decimals)} {settings.collateral_symbol}")

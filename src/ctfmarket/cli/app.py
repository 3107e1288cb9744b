"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from ctfmarket.config import get_settings
from ctfmarket.config.settings import configure_logging

app = typer.Typer(
    name="ctfm",
    help="ctfmarket - Binary prediction markets on a conditional-token position ledger.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "config_dir": config_dir, "profile": profile}


# Subcommands registered from other modules
from ctfmarket.cli import api_cmd, collateral, events, market, oracle, position  # noqa: E402

app.add_typer(market.app, name="market")
app.add_typer(position.app, name="position")
app.add_typer(oracle.app, name="oracle")
app.add_typer(collateral.app, name="collateral")
app.add_typer(events.app, name="events")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()

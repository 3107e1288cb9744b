"""API server command."""

import typer

from ctfmarket.api.main import run_api

app = typer.Typer(help="Start the HTTP API")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (default from config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default from config)"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    settings = ctx.obj["settings"]
    run_api(host=host or settings.api_host, port=port or settings.api_port, profile=ctx.obj.get("profile"))


if __name__ == "__main__":
    app()

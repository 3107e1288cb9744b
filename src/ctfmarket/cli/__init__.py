"""Typer CLI (`ctfm`)."""

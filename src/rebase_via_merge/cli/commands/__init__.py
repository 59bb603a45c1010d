"""Command registration helpers for the rebase-via-merge CLI."""

from __future__ import annotations

import typer

from . import rebase as rebase_module


def register_commands(app: typer.Typer) -> None:
    """Attach the single root command to the Typer application."""
    app.command()(rebase_module.rebase_via_merge)


__all__ = ["register_commands"]

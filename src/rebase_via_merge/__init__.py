"""
rebase-via-merge - rebase a branch while resolving conflicts only once.

Usage:
    git-rebase-via-merge                 # onto the configured default base
    git-rebase-via-merge origin/main
    git rebase-via-merge --dry-run main
"""

from __future__ import annotations

__version__ = "0.3.0"

import typer  # noqa: E402

from rebase_via_merge.cli.commands import register_commands  # noqa: E402

app = typer.Typer(
    name="git-rebase-via-merge",
    help="Rebase the current branch via a hidden merge, resolving conflicts only once",
    add_completion=False,
)

register_commands(app)


def main() -> None:
    app()


__all__ = ["app", "main", "__version__"]

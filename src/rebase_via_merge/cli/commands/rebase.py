"""Rebase-via-merge command implementation.

Resolves conflicts once in a hidden merge, replays the branch with a
theirs-biased rebase and restores the merge result with at most one extra
commit.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.markup import escape

from rebase_via_merge.cli.helpers import console
from rebase_via_merge.cli.prompts import log_non_interactive_context
from rebase_via_merge.core.config import load_config
from rebase_via_merge.core.constants import DEFAULT_BASE_BRANCH
from rebase_via_merge.core.errors import (
    GitOperationError,
    InvalidRunTransition,
    OperatorAbort,
    PreflightError,
)
from rebase_via_merge.rebase.executor import RebaseResult, build_tracker, execute_rebase_via_merge


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _version_callback(value: bool) -> None:
    if value:
        from rebase_via_merge import __version__

        console.print(f"rebase-via-merge {__version__}")
        raise typer.Exit()


def _print_summary(result: RebaseResult) -> None:
    if result.context is None or result.hidden is None:
        return
    console.print(
        f"\n[green]'{escape(result.context.branch.name)}' rebased on '{escape(result.context.base.name)}'[/green]"
        f" ({result.replayed_commits} commits replayed)"
    )
    console.print(f"  hidden merge commit: {result.hidden.short}")
    if result.reconcile is not None and result.reconcile.commit is not None:
        console.print(f"  reconciliation commit: {result.reconcile.commit[:10]}")


def rebase_via_merge(
    base: str = typer.Argument(
        None,
        help=f"Base branch to rebase onto (default: $REBASE_VIA_MERGE_BASE, git config rebase-via-merge.base, or {DEFAULT_BASE_BRANCH})",
        show_default=False,
    ),
    repo: Path = typer.Option(Path("."), "--repo", "-C", help="Repository to operate on"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt before starting"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate and show the git commands without executing"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every git command"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Rebase the current branch onto BASE via a hidden merge.

    Conflicts are resolved once while merging BASE into the branch on a
    detached HEAD. The branch is then rebased with -X theirs and, if the
    result differs, one commit restores the hidden merge tree.
    """
    configure_logging(verbose)
    config = load_config(repo.resolve(), base, assume_yes=yes, dry_run=dry_run)
    if not (yes or dry_run):
        log_non_interactive_context()
    console.print("This script will perform rebase via merge.\n")

    tracker = build_tracker(config.base_branch)
    try:
        result = execute_rebase_via_merge(config, tracker)
    except PreflightError as exc:
        raise typer.Exit(exc.exit_code)
    except OperatorAbort as exc:
        raise typer.Exit(exc.exit_code)
    except (GitOperationError, InvalidRunTransition) as exc:
        console.print(tracker.render())
        console.print(f"\n[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(exc.exit_code)

    _print_summary(result)
    if verbose or result.dry_run:
        console.print(tracker.render())


__all__ = ["rebase_via_merge", "configure_logging"]

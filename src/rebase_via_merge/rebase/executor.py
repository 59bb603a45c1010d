"""Core rebase-via-merge execution logic.

Provides the main entry point, orchestrating pre-flight validation, the
hidden merge, the theirs-biased rebase and the final reconciliation.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from rebase_via_merge.cli import StepTracker
from rebase_via_merge.cli.helpers import console
from rebase_via_merge.cli.prompts import Prompter, typer_prompter
from rebase_via_merge.core.config import RunConfig
from rebase_via_merge.core.constants import HIDDEN_COMMIT_MESSAGE
from rebase_via_merge.core.errors import PreflightError, RebaseViaMergeError
from rebase_via_merge.core.git_ops import GitOperations
from rebase_via_merge.core.git_query import GitRepository
from rebase_via_merge.rebase.context import HiddenCommit, RunContext, RunState, RunStateMachine
from rebase_via_merge.rebase.preflight import confirm_start, run_preflight
from rebase_via_merge.rebase.stages import (
    ReconcileResult,
    run_hidden_merge,
    run_rebase,
    run_reconciliation,
)

logger = logging.getLogger(__name__)

__all__ = ["RebaseResult", "build_tracker", "build_plan", "execute_rebase_via_merge"]


@dataclass
class RebaseResult:
    """Result of a rebase-via-merge run."""

    success: bool
    state: RunState
    context: RunContext | None = None
    hidden: HiddenCommit | None = None
    reconcile: ReconcileResult | None = None
    replayed_commits: int = 0
    dry_run: bool = False


def build_tracker(base_branch: str) -> StepTracker:
    tracker = StepTracker("Rebase via merge")
    tracker.add("preflight", "Pre-flight validation")
    tracker.add("confirm", "Operator confirmation")
    tracker.add("merge", f"Hidden merge of {base_branch}")
    tracker.add("rebase", f"Rebase onto {base_branch}")
    tracker.add("reconcile", "Reconcile with hidden merge")
    return tracker


def build_plan(context: RunContext) -> list[str]:
    """Git commands a real run would issue, in order."""
    base = shlex.quote(context.base.name)
    branch = shlex.quote(context.branch.name)
    return [
        f"git checkout --detach {context.branch.short_hash}",
        f"git merge --no-edit -m {shlex.quote(HIDDEN_COMMIT_MESSAGE)} {base}",
        f"  (on conflicts: resolve, stage, git commit -m {shlex.quote(HIDDEN_COMMIT_MESSAGE)})",
        f"git checkout {branch}",
        f"git rebase -X theirs {base}",
        "  (on conflicts: resolve, stage, git rebase --continue)",
        f"git commit-tree <hidden>^{{tree}} -p HEAD -m {shlex.quote(context.reconcile_message)}",
        "  (only when the rebased tree differs from the hidden merge tree)",
        "git merge --ff-only <reconciliation commit>",
    ]


def _show_plan(context: RunContext) -> None:
    console.print("\n[cyan]Dry run - would execute:[/cyan]")
    step = 0
    for line in build_plan(context):
        if line.startswith("  "):
            console.print(f"     [dim]{line.strip()}[/dim]")
            continue
        step += 1
        console.print(f"  {step}. {line}")


def execute_rebase_via_merge(
    config: RunConfig,
    tracker: StepTracker,
    prompt: Prompter = typer_prompter,
) -> RebaseResult:
    """Run the whole workflow against ``config.repo_root``.

    Raises:
        PreflightError: a precondition failed, nothing was changed
        OperatorAbort: the operator aborted (exit code 1 or 2)
        GitOperationError: git failed in a way state inspection cannot explain
    """
    repo = GitRepository(config.repo_root, timeout=config.git_timeout)
    ops = GitOperations(repo)
    state = RunStateMachine()

    tracker.start("preflight")
    try:
        context = run_preflight(repo, config.base_branch)
    except PreflightError as exc:
        tracker.error("preflight", exc.code.lower().replace("_", " "))
        tracker.skip_pending()
        state.advance(RunState.ABORTED)
        raise
    tracker.complete("preflight", f"{context.branch.name} onto {context.base.name}")

    if config.dry_run:
        _show_plan(context)
        tracker.skip_pending("dry run")
        return RebaseResult(success=True, state=state.state, context=context, dry_run=True)

    result = RebaseResult(success=False, state=state.state, context=context)
    try:
        if config.assume_yes:
            tracker.skip("confirm", "--yes")
        else:
            tracker.start("confirm")
            confirm_start(prompt)
            tracker.complete("confirm")

        tracker.start("merge")
        result.hidden = run_hidden_merge(context, repo, ops, prompt, state)
        tracker.complete("merge", f"hidden commit {result.hidden.short}")

        tracker.start("rebase")
        run_rebase(context, repo, ops, prompt, state)
        result.replayed_commits = len(repo.commits_reachable_from_not_in("HEAD", context.base.name))
        tracker.complete("rebase", f"{result.replayed_commits} commits replayed")

        tracker.start("reconcile")
        result.reconcile = run_reconciliation(context, repo, ops, result.hidden, state)
        if result.reconcile.commit_created:
            tracker.complete("reconcile", f"added {result.reconcile.commit[:10]}")
        else:
            tracker.complete("reconcile", "trees already equal")

        state.advance(RunState.DONE)
    except RebaseViaMergeError as exc:
        running = tracker.running
        if running is not None:
            tracker.error(running.key, str(exc))
        tracker.skip_pending()
        if not state.finished:
            state.advance(RunState.ABORTED)
        logger.info("Run ended in %s: %s", state.state.value, exc)
        raise

    result.success = True
    result.state = state.state
    console.print("[green]Done.[/green]")
    return result

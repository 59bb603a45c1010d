"""Hidden merge, theirs-biased rebase and tree reconciliation.

The rebase is allowed to be sloppy: ``-X theirs`` only has to get through the
replay. Reconciliation afterwards forces the branch tree to equal the tree of
the hidden merge, which is where conflicts were resolved properly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.markup import escape

from rebase_via_merge.cli.helpers import console
from rebase_via_merge.cli.prompts import Prompter
from rebase_via_merge.core.constants import HIDDEN_COMMIT_MESSAGE
from rebase_via_merge.core.errors import GitOperationError
from rebase_via_merge.core.git_ops import GitOperations, OperationOutcome, OperationResult
from rebase_via_merge.core.git_query import GitRepository
from rebase_via_merge.rebase.conflicts import ConflictMode, ConflictResolutionLoop
from rebase_via_merge.rebase.context import HiddenCommit, RunContext, RunState, RunStateMachine

logger = logging.getLogger(__name__)

__all__ = [
    "ReconcileResult",
    "run_hidden_merge",
    "run_rebase",
    "run_reconciliation",
]


@dataclass(frozen=True)
class ReconcileResult:
    hidden_tree: str
    head_tree: str
    commit: str | None = None

    @property
    def commit_created(self) -> bool:
        return self.commit is not None


def _raise_hard_failure(args: list[str], result: OperationResult) -> None:
    raise GitOperationError(args, result.command.returncode, result.command.stderr or result.command.stdout)


def run_hidden_merge(
    context: RunContext,
    repo: GitRepository,
    ops: GitOperations,
    prompt: Prompter,
    state: RunStateMachine,
) -> HiddenCommit:
    """Merge the base into the branch tip on a detached HEAD.

    Returns:
        The hidden merge commit, captured before any further mutation.
    """
    state.advance(RunState.MERGING)
    ops.checkout_detached(context.branch.full_hash)

    result = ops.merge(context.base.name, HIDDEN_COMMIT_MESSAGE)
    if result.outcome is OperationOutcome.HARD_FAILURE:
        console.print(f"[red]Merge of '{escape(context.base.name)}' failed:[/red] {escape(result.detail)}")
        ops.checkout_branch(context.branch.name)
        _raise_hard_failure(["merge", context.base.name], result)

    if result.outcome is OperationOutcome.CONFLICTS_PENDING or repo.has_merge_in_progress():
        state.advance(RunState.MERGE_CONFLICT)
        ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, prompt).run()
        state.advance(RunState.MERGING)

    head = repo.full_hash("HEAD")
    if head is None:
        raise GitOperationError(["rev-parse", "HEAD"], 1, "unable to resolve HEAD after merge")
    if head == context.branch.full_hash or not repo.is_ancestor(context.base.name, head):
        ops.checkout_branch(context.branch.name)
        raise GitOperationError(
            ["merge", context.base.name], 1, f"HEAD does not contain '{context.base.name}' after the hidden merge"
        )
    hidden = HiddenCommit(hash=head)
    console.print(f"Merge succeeded at hidden commit: [cyan]{hidden.short}[/cyan]")
    logger.debug("Hidden merge commit %s", hidden.hash)
    return hidden


def run_rebase(
    context: RunContext,
    repo: GitRepository,
    ops: GitOperations,
    prompt: Prompter,
    state: RunStateMachine,
) -> None:
    """Check the branch out again and rebase it with ``-X theirs``.

    ``rebase --continue`` can stop on a later commit, so the conflict loop is
    re-entered for as long as the rebase is still in progress.
    """
    state.advance(RunState.REBASING)
    console.print("Starting rebase resolving any conflicts automatically.")
    ops.checkout_branch(context.branch.name)

    result = ops.rebase(context.base.name)
    if result.outcome is OperationOutcome.HARD_FAILURE:
        console.print(f"[red]Rebase onto '{escape(context.base.name)}' failed:[/red] {escape(result.detail)}")
        _raise_hard_failure(["rebase", "-X", "theirs", context.base.name], result)

    while repo.has_rebase_in_progress() or repo.has_unmerged_paths():
        state.advance(RunState.REBASE_CONFLICT)
        continued = ConflictResolutionLoop(ConflictMode.REBASE, repo, ops, context, prompt).run()
        state.advance(RunState.REBASING)
        if continued is None:
            continue
        if continued.outcome is OperationOutcome.HARD_FAILURE:
            console.print(f"[red]git rebase --continue failed:[/red] {escape(continued.detail)}")
            _raise_hard_failure(["rebase", "--continue"], continued)
        if continued.outcome is OperationOutcome.CONFLICTS_PENDING and not repo.has_unmerged_paths():
            # Stopped without conflicts (e.g. a commit became empty); show git's reason.
            if continued.detail:
                console.print(escape(continued.detail), style="dim")

    if repo.current_branch_name() != context.branch.name:
        raise GitOperationError(
            ["symbolic-ref", "HEAD"], 1, f"expected '{context.branch.name}' to be checked out after rebase"
        )
    if not repo.is_ancestor(context.base.name, "HEAD"):
        raise GitOperationError(
            ["rebase", context.base.name], 1, f"'{context.branch.name}' does not contain '{context.base.name}' after rebase"
        )


def run_reconciliation(
    context: RunContext,
    repo: GitRepository,
    ops: GitOperations,
    hidden: HiddenCommit,
    state: RunStateMachine,
) -> ReconcileResult:
    """Make the branch tree equal to the hidden merge tree.

    Compares the tree ids recorded in the two commit objects. When they
    differ, one commit carrying the hidden tree is created on top of HEAD
    and fast-forwarded in.
    """
    state.advance(RunState.RECONCILING)
    hidden_tree = repo.tree_of(hidden.hash)
    head_tree = repo.tree_of("HEAD")
    if hidden_tree is None or head_tree is None:
        raise GitOperationError(["cat-file", "commit"], 1, "unable to read commit tree")

    if hidden_tree == head_tree:
        console.print("You don't need an additional commit. Project state is correct.")
        return ReconcileResult(hidden_tree=hidden_tree, head_tree=head_tree)

    console.print("Restoring project state from the hidden merge with single additional commit.")
    parent = repo.full_hash("HEAD")
    if parent is None:
        raise GitOperationError(["rev-parse", "HEAD"], 1, "unable to resolve HEAD before reconciliation")
    commit = ops.commit_tree(hidden.tree_ish, parent, context.reconcile_message)
    ops.fast_forward(commit)
    console.print(f"Additional commit: [cyan]{commit[:10]}[/cyan]")
    logger.debug("Reconciliation commit %s on parent %s", commit, parent)
    return ReconcileResult(hidden_tree=hidden_tree, head_tree=head_tree, commit=commit)

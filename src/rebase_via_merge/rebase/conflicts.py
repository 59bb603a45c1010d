"""Interactive conflict resolution shared by the hidden merge and the rebase.

The loop is a small state machine. ``next_state`` is the whole transition
table, so the re-prompt edges (invalid input, files still unstaged) can be
exercised without a repository.

Completion needs no unstaged paths. The loop then finalizes the operation if
git still has it in progress; otherwise it accepts only a result that already
contains the base, and treats anything else as an abort. The exit status of
merge/rebase cannot tell conflicts apart from other failures.
"""

from __future__ import annotations

import logging
from enum import StrEnum

import typer
from rich.markup import escape

from rebase_via_merge.cli.helpers import console, print_paths
from rebase_via_merge.cli.prompts import CONTINUE_OR_ABORT, PromptChoice, Prompter, parse_choice
from rebase_via_merge.core.constants import EXIT_CONFLICT_ABORT, HIDDEN_COMMIT_MESSAGE
from rebase_via_merge.core.errors import GitOperationError, InvalidRunTransition, OperatorAbort
from rebase_via_merge.core.git_ops import GitOperations, OperationResult
from rebase_via_merge.core.git_query import GitRepository
from rebase_via_merge.rebase.context import RunContext

logger = logging.getLogger(__name__)

__all__ = [
    "ConflictMode",
    "LoopState",
    "LoopEvent",
    "TRANSITIONS",
    "next_state",
    "ConflictResolutionLoop",
]


class ConflictMode(StrEnum):
    MERGE = "merge"
    REBASE = "rebase"


class LoopState(StrEnum):
    PROMPTING = "prompting"
    CHECKING = "checking"
    COMPLETING = "completing"
    ABORTING = "aborting"
    DONE = "done"


class LoopEvent(StrEnum):
    CONTINUE = "continue"
    ABORT = "abort"
    INVALID = "invalid"
    FILES_REMAIN = "files_remain"
    ALL_STAGED = "all_staged"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


TRANSITIONS: dict[tuple[LoopState, LoopEvent], LoopState] = {
    (LoopState.PROMPTING, LoopEvent.CONTINUE): LoopState.CHECKING,
    (LoopState.PROMPTING, LoopEvent.ABORT): LoopState.ABORTING,
    (LoopState.PROMPTING, LoopEvent.INVALID): LoopState.PROMPTING,
    (LoopState.CHECKING, LoopEvent.FILES_REMAIN): LoopState.PROMPTING,
    (LoopState.CHECKING, LoopEvent.ALL_STAGED): LoopState.COMPLETING,
    (LoopState.COMPLETING, LoopEvent.COMPLETED): LoopState.DONE,
    (LoopState.COMPLETING, LoopEvent.ABANDONED): LoopState.ABORTING,
}


def next_state(state: LoopState, event: LoopEvent) -> LoopState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidRunTransition(
            f"Conflict loop has no transition from {state.value} on {event.value}"
        ) from None


class ConflictResolutionLoop:
    """Drive one pass of operator-assisted conflict resolution."""

    def __init__(
        self,
        mode: ConflictMode,
        repo: GitRepository,
        ops: GitOperations,
        context: RunContext,
        prompt: Prompter,
    ):
        self.mode = mode
        self.repo = repo
        self.ops = ops
        self.context = context
        self.prompt = prompt
        self.state = LoopState.PROMPTING
        self.completion: OperationResult | None = None

    def run(self) -> OperationResult | None:
        """Loop until the operation is finalized.

        Returns:
            The rebase-continue result in rebase mode, None in merge mode.

        Raises:
            OperatorAbort: exit code 2, after the branch checkout is restored
        """
        console.print(f"\n[yellow]You have at least one {self.mode.value} conflict.[/yellow]")
        while self.state is not LoopState.DONE:
            event = self._step()
            self.state = next_state(self.state, event)
        return self.completion

    def _step(self) -> LoopEvent:
        if self.state is LoopState.PROMPTING:
            self._show_status()
            return self._read_choice()
        if self.state is LoopState.CHECKING:
            return self._check()
        if self.state is LoopState.COMPLETING:
            return self._complete()
        if self.state is LoopState.ABORTING:
            self._abort()
        raise InvalidRunTransition(f"Conflict loop cannot step from {self.state.value}")

    def _show_status(self) -> None:
        console.print("\nFix all conflicts in the following files, stage all the changes and type 'c':")
        print_paths(self.repo.unstaged_files())
        console.print("\nList of conflict markers:")
        report = self.repo.conflict_marker_report()
        if report:
            console.print(escape(report), style="dim")
        else:
            console.print("  [dim](none)[/dim]")

    def _read_choice(self) -> LoopEvent:
        try:
            response = self.prompt(CONTINUE_OR_ABORT)
        except (typer.Abort, KeyboardInterrupt, EOFError):
            console.print()
            return LoopEvent.ABORT
        choice = parse_choice(response)
        if choice is PromptChoice.CONTINUE:
            return LoopEvent.CONTINUE
        if choice is PromptChoice.ABORT:
            return LoopEvent.ABORT
        console.print("[red]Invalid option[/red]")
        return LoopEvent.INVALID

    def _check(self) -> LoopEvent:
        remaining = self.repo.unstaged_files()
        if remaining:
            console.print("\n[red]There are still unstaged files:[/red]")
            print_paths(remaining, style="red")
            return LoopEvent.FILES_REMAIN
        return LoopEvent.ALL_STAGED

    def _in_progress(self) -> bool:
        if self.mode is ConflictMode.MERGE:
            return self.repo.has_merge_in_progress()
        return self.repo.has_rebase_in_progress()

    def _concluded_outside_loop(self) -> bool:
        """Whether git already holds a finished result the loop did not make.

        The base must be an ancestor of HEAD. For the merge, HEAD must also
        have moved off the branch tip, which rules out ``git merge --abort``.
        """
        if not self.repo.is_ancestor(self.context.base.name, "HEAD"):
            return False
        if self.mode is ConflictMode.MERGE:
            return self.repo.full_hash("HEAD") != self.context.branch.full_hash
        return True

    def _complete(self) -> LoopEvent:
        if self._in_progress():
            if self.mode is ConflictMode.MERGE:
                self.ops.commit(HIDDEN_COMMIT_MESSAGE)
            else:
                self.completion = self.ops.rebase_continue()
                logger.debug("rebase --continue outcome: %s", self.completion.outcome)
            return LoopEvent.COMPLETED

        if self._concluded_outside_loop():
            logger.info("%s already concluded outside the loop", self.mode.value)
            return LoopEvent.COMPLETED

        console.print(f"\n[red]The {self.mode.value} is no longer in progress and was not completed.[/red]")
        logger.warning("%s abandoned outside the loop; aborting the run", self.mode.value)
        return LoopEvent.ABANDONED

    def _abort(self) -> None:
        if self._in_progress():
            if self.mode is ConflictMode.MERGE:
                self.ops.merge_abort()
            else:
                self.ops.rebase_abort()
        branch = self.context.branch.name
        try:
            self.ops.checkout_branch(branch)
        except GitOperationError as exc:
            console.print(f"[red]Could not check out '{escape(branch)}':[/red] {escape(str(exc))}")
            console.print("[yellow]Aborted[/yellow]")
            raise OperatorAbort("Aborted", exit_code=EXIT_CONFLICT_ABORT) from exc
        console.print("[yellow]Aborted[/yellow]")
        raise OperatorAbort("Aborted", exit_code=EXIT_CONFLICT_ABORT)

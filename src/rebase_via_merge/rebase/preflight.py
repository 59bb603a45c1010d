"""Pre-flight validation before any mutation.

Checks run in a fixed order and the first failure stops the run. Nothing in
the repository has been touched when a check fails, so a failure needs no
cleanup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import typer
from rich.markup import escape

from rebase_via_merge.cli.helpers import console, print_paths
from rebase_via_merge.cli.prompts import (
    CONTINUE_OR_ABORT,
    PromptChoice,
    Prompter,
    parse_choice,
)
from rebase_via_merge.core.constants import EXIT_PRECONDITION
from rebase_via_merge.core.errors import OperatorAbort, PreflightError
from rebase_via_merge.core.git_query import GitRepository
from rebase_via_merge.rebase.context import BaseRef, BranchRef, RunContext

logger = logging.getLogger(__name__)

__all__ = [
    "PreflightIssue",
    "PreflightResult",
    "check_preconditions",
    "display_refs",
    "run_preflight",
    "confirm_start",
]


@dataclass
class PreflightIssue:
    """Single failed check with a remediation hint."""

    code: str
    check: str
    message: str
    remediation: str
    command: str | None = None
    paths: list[str] = field(default_factory=list)

    def to_error(self) -> PreflightError:
        return PreflightError(self.code, self.message, self.paths, self.remediation)


@dataclass
class PreflightResult:
    """What the checks established, and the first failure if any."""

    base_name: str
    branch: BranchRef | None = None
    base: BaseRef | None = None
    issue: PreflightIssue | None = None
    context: RunContext | None = None

    @property
    def passed(self) -> bool:
        return self.issue is None and self.context is not None

    def raise_for_failure(self) -> RunContext:
        if self.issue is not None:
            raise self.issue.to_error()
        if self.context is None:
            raise PreflightError("PREFLIGHT_INCOMPLETE", "Pre-flight checks did not capture a run context.")
        return self.context


def check_preconditions(repo: GitRepository, base_name: str) -> PreflightResult:
    """Run checks 0-8 without printing or prompting."""
    result = PreflightResult(base_name=base_name)

    if not repo.is_inside_work_tree():
        result.issue = PreflightIssue(
            code="NOT_A_GIT_REPOSITORY",
            check="repository_presence",
            message=f"Can't rebase. {repo.repo_root} is not inside a git working tree.",
            remediation="Run the command from a repository or pass --repo.",
        )
        return result

    branch_name = repo.current_branch_name()
    if branch_name is None:
        result.issue = PreflightIssue(
            code="DETACHED_HEAD",
            check="current_branch",
            message="Can't rebase. There is no current branch: you are in a detached HEAD state.",
            remediation="Check out the branch you want to rebase.",
            command="git checkout <branch>",
        )
        return result

    base_short = repo.short_hash(base_name)
    if base_short is None:
        result.issue = PreflightIssue(
            code="BASE_NOT_FOUND",
            check="base_branch",
            message=f"Can't rebase. Base branch '{base_name}' not found.",
            remediation="Fetch the remote or pass an existing base branch.",
            command="git fetch",
        )
        return result

    branch_short = repo.short_hash(branch_name)
    branch_full = repo.full_hash(branch_name)
    if branch_short is None or branch_full is None:
        result.issue = PreflightIssue(
            code="BRANCH_UNRESOLVED",
            check="current_branch",
            message=f"Can't rebase. Current branch '{branch_name}' has no commits.",
            remediation="Commit something on the branch first.",
        )
        return result

    result.branch = BranchRef(name=branch_name, short_hash=branch_short, full_hash=branch_full)
    result.base = BaseRef(name=base_name, short_hash=base_short)

    changed = repo.changed_files()
    if changed:
        result.issue = PreflightIssue(
            code="DIRTY_WORKING_TREE",
            check="working_tree",
            message="Can't rebase. You need to commit or stash changes in the following files:",
            remediation="Commit or stash these changes, then run again.",
            command="git stash --include-untracked",
            paths=changed,
        )
        return result

    if repo.full_hash(base_name) == branch_full:
        result.issue = PreflightIssue(
            code="BRANCH_EQUALS_BASE",
            check="divergence",
            message="Can't rebase. Current branch is equal to the base branch.",
            remediation="Nothing to do.",
        )
        return result

    if not repo.commits_reachable_from_not_in(base_name, branch_name):
        result.issue = PreflightIssue(
            code="ALREADY_REBASED",
            check="divergence",
            message="Can't rebase. Current branch already contains every commit of the base branch (already rebased).",
            remediation="Nothing to do.",
        )
        return result

    if not repo.commits_reachable_from_not_in(branch_name, base_name):
        result.issue = PreflightIssue(
            code="NO_UNIQUE_COMMITS",
            check="divergence",
            message="Can't rebase. Current branch has no commits absent from the base branch; fast-forward instead.",
            remediation="Fast-forward the branch to the base.",
            command=f"git merge --ff-only {base_name}",
        )
        return result

    result.context = RunContext(repo_root=repo.repo_root, branch=result.branch, base=result.base)
    return result


def display_refs(repo: GitRepository, branch: BranchRef, base: BaseRef) -> None:
    """Show both refs with their one-line commit summary."""
    console.print("Current branch:")
    console.print(f"[cyan]{escape(branch.name)}[/cyan] ({branch.short_hash})")
    console.print(escape(repo.describe_commit(branch.short_hash)))
    console.print()
    console.print("Base branch:")
    console.print(f"[cyan]{escape(base.name)}[/cyan] ({base.short_hash})")
    console.print(escape(repo.describe_commit(base.short_hash)))
    console.print()


def display_issue(issue: PreflightIssue) -> None:
    console.print(f"[red]{escape(issue.message)}[/red]")
    if issue.paths:
        print_paths(issue.paths)
    if issue.command:
        console.print(f"[dim]{escape(issue.remediation)} ({escape(issue.command)})[/dim]")
    else:
        console.print(f"[dim]{escape(issue.remediation)}[/dim]")


def run_preflight(repo: GitRepository, base_name: str) -> RunContext:
    """Validate the repository and return the captured run context.

    Raises:
        PreflightError: on the first failing check
    """
    result = check_preconditions(repo, base_name)
    if result.branch is not None and result.base is not None:
        display_refs(repo, result.branch, result.base)
    if result.issue is not None:
        logger.info("Pre-flight check %s failed: %s", result.issue.check, result.issue.code)
        display_issue(result.issue)
    return result.raise_for_failure()


def confirm_start(prompt: Prompter) -> None:
    """Ask the operator to proceed; re-prompts until c or a is given.

    Raises:
        OperatorAbort: with exit code 1 when the operator aborts here
    """
    while True:
        try:
            response = prompt(CONTINUE_OR_ABORT)
        except (typer.Abort, KeyboardInterrupt, EOFError):
            response = "a"
        choice = parse_choice(response)
        if choice is PromptChoice.CONTINUE:
            return
        if choice is PromptChoice.ABORT:
            console.print("Aborted")
            raise OperatorAbort("Aborted", exit_code=EXIT_PRECONDITION)
        console.print("Please type 'c' to continue or 'a' to abort.")

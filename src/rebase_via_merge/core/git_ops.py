"""Mutating git operations used by the rebase-via-merge stages.

Merge and rebase report conflicts and hard failures with the same non-zero
exit status, so their outcome is decided by inspecting repository state
after the call rather than by the return code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from rebase_via_merge.core.errors import GitOperationError
from rebase_via_merge.core.git_query import GitCommandResult, GitRepository, run_git

logger = logging.getLogger(__name__)

__all__ = ["OperationOutcome", "OperationResult", "GitOperations"]

# Keeps merge/rebase/continue from opening an editor for commit messages.
_NO_EDITOR_ENV = {"GIT_EDITOR": "true"}


class OperationOutcome(StrEnum):
    CLEAN = "clean"
    CONFLICTS_PENDING = "conflicts_pending"
    HARD_FAILURE = "hard_failure"


@dataclass
class OperationResult:
    outcome: OperationOutcome
    command: GitCommandResult

    @property
    def detail(self) -> str:
        return (self.command.stderr or self.command.stdout).strip()


class GitOperations:
    """Mutations against the repository behind a GitRepository."""

    def __init__(self, repo: GitRepository):
        self.repo = repo

    def _git(self, args: list[str], env: dict[str, str] | None = None) -> GitCommandResult:
        return run_git(self.repo.repo_root, args, timeout=self.repo.timeout, env=env)

    def _git_checked(self, args: list[str], env: dict[str, str] | None = None) -> GitCommandResult:
        result = self._git(args, env=env)
        if not result.ok:
            raise GitOperationError(args, result.returncode, result.stderr)
        return result

    def checkout_detached(self, commit: str) -> None:
        self._git_checked(["checkout", "--quiet", "--detach", commit])

    def checkout_branch(self, branch: str) -> None:
        self._git_checked(["checkout", "--quiet", branch])

    def merge(self, ref: str, message: str) -> OperationResult:
        """Merge ``ref`` into HEAD, classifying the outcome by state."""
        args = ["merge", "--no-edit", "-m", message, ref]
        result = self._git(args, env=_NO_EDITOR_ENV)
        if result.ok:
            return OperationResult(OperationOutcome.CLEAN, result)
        logger.info("git merge %s exited %s: %s", ref, result.returncode, result.stderr.strip())
        if self.repo.has_merge_in_progress() or self.repo.has_unmerged_paths():
            return OperationResult(OperationOutcome.CONFLICTS_PENDING, result)
        return OperationResult(OperationOutcome.HARD_FAILURE, result)

    def commit(self, message: str) -> None:
        self._git_checked(["commit", "--no-edit", "-m", message], env=_NO_EDITOR_ENV)

    def merge_abort(self) -> None:
        result = self._git(["merge", "--abort"])
        if not result.ok:
            logger.warning("git merge --abort failed: %s", result.stderr.strip())

    def rebase(self, onto: str, strategy_option: str = "theirs") -> OperationResult:
        """Rebase the current branch onto ``onto`` with ``-X <strategy_option>``."""
        args = ["rebase", "-X", strategy_option, onto]
        result = self._git(args, env=_NO_EDITOR_ENV)
        return self._classify_rebase(args, result)

    def rebase_continue(self) -> OperationResult:
        args = ["rebase", "--continue"]
        result = self._git(args, env=_NO_EDITOR_ENV)
        return self._classify_rebase(args, result)

    def _classify_rebase(self, args: list[str], result: GitCommandResult) -> OperationResult:
        in_progress = self.repo.has_rebase_in_progress()
        if result.ok and not in_progress:
            return OperationResult(OperationOutcome.CLEAN, result)
        if not result.ok:
            logger.info("git %s exited %s: %s", " ".join(args), result.returncode, result.stderr.strip())
        if in_progress or self.repo.has_unmerged_paths():
            return OperationResult(OperationOutcome.CONFLICTS_PENDING, result)
        return OperationResult(OperationOutcome.HARD_FAILURE, result)

    def rebase_abort(self) -> None:
        result = self._git(["rebase", "--abort"])
        if not result.ok:
            logger.warning("git rebase --abort failed: %s", result.stderr.strip())

    def commit_tree(self, tree_ish: str, parent: str, message: str) -> str:
        """Create a commit object for ``tree_ish`` on ``parent`` and return its hash."""
        result = self._git_checked(["commit-tree", tree_ish, "-p", parent, "-m", message])
        return result.stdout.strip()

    def fast_forward(self, commit: str) -> None:
        self._git_checked(["merge", "--ff-only", "--quiet", commit])

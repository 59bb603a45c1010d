"""Exception hierarchy for rebase-via-merge.

Every error carries the process exit code it maps to. Only the CLI layer
turns these into ``typer.Exit``; the engine raises and lets them propagate.
"""

from __future__ import annotations

from rebase_via_merge.core.constants import EXIT_CONFLICT_ABORT, EXIT_PRECONDITION

__all__ = [
    "RebaseViaMergeError",
    "PreflightError",
    "OperatorAbort",
    "GitOperationError",
    "InvalidRunTransition",
]


class RebaseViaMergeError(Exception):
    """Base error for the rebase-via-merge workflow."""

    exit_code: int = EXIT_PRECONDITION


class PreflightError(RebaseViaMergeError):
    """A precondition failed before any mutation happened."""

    def __init__(
        self,
        code: str,
        message: str,
        paths: list[str] | None = None,
        remediation: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.paths = list(paths or [])
        self.remediation = remediation


class OperatorAbort(RebaseViaMergeError):
    """The operator chose to abort.

    Aborting at the pre-flight prompt exits with 1, aborting inside a
    conflict loop exits with 2.
    """

    def __init__(self, message: str = "Aborted", exit_code: int = EXIT_CONFLICT_ABORT) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class GitOperationError(RebaseViaMergeError):
    """A git command failed in a way state inspection cannot explain."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "") -> None:
        detail = stderr.strip().splitlines()[0] if stderr.strip() else "no error output"
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {detail}")
        self.git_args = list(args)
        self.returncode = returncode
        self.stderr = stderr


class InvalidRunTransition(RebaseViaMergeError):
    """Run state moved backwards or skipped a stage."""

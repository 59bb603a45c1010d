"""Read-only git introspection.

Every query returns ``None`` or an empty value when git cannot answer,
instead of raising. Callers decide what a missing answer means.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from rebase_via_merge.core.constants import DEFAULT_GIT_TIMEOUT

logger = logging.getLogger(__name__)

__all__ = [
    "GitCommandResult",
    "GitRepository",
    "run_git",
    "parse_porcelain_status",
]


@dataclass
class GitCommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_git(
    repo_root: Path,
    args: list[str],
    timeout: int = DEFAULT_GIT_TIMEOUT,
    env: dict[str, str] | None = None,
) -> GitCommandResult:
    """Run git command and normalize failure shape for deterministic handling."""
    logger.debug("git %s", " ".join(args))
    run_env = None
    if env:
        run_env = {**os.environ, **env}
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
            env=run_env,
        )
        return GitCommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
    except FileNotFoundError:
        return GitCommandResult(
            returncode=127,
            stdout="",
            stderr="git executable not found on PATH",
        )
    except subprocess.TimeoutExpired:
        return GitCommandResult(
            returncode=124,
            stdout="",
            stderr=f"git command timed out: git {' '.join(args)}",
        )


@dataclass(frozen=True)
class StatusEntry:
    index: str
    worktree: str
    path: str

    @property
    def is_unstaged(self) -> bool:
        # Unmerged (UU, AA, ...) and untracked (??) entries have a non-blank
        # work-tree column, so they count as not yet staged.
        return self.worktree != " "


def parse_porcelain_status(output: str) -> list[StatusEntry]:
    """Parse ``git status --porcelain -z`` output into ordered entries.

    Renames and copies carry a second NUL-terminated field with the source
    path; only the destination is reported.
    """
    entries: list[StatusEntry] = []
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        record = fields[i]
        i += 1
        if len(record) < 4:
            continue
        index, worktree, path = record[0], record[1], record[3:]
        entries.append(StatusEntry(index=index, worktree=worktree, path=path))
        if index in ("R", "C"):
            i += 1
    return entries


class GitRepository:
    """Side-effect-free queries against a git working tree."""

    def __init__(self, repo_root: Path, timeout: int = DEFAULT_GIT_TIMEOUT):
        self.repo_root = repo_root
        self.timeout = timeout

    def _git(self, args: list[str]) -> GitCommandResult:
        return run_git(self.repo_root, args, timeout=self.timeout)

    def is_inside_work_tree(self) -> bool:
        result = self._git(["rev-parse", "--is-inside-work-tree"])
        return result.ok and result.stdout.strip().lower() == "true"

    def current_branch_name(self) -> str | None:
        """Short name of the checked-out branch, or None when HEAD is detached."""
        result = self._git(["symbolic-ref", "--short", "-q", "HEAD"])
        name = result.stdout.strip()
        if not result.ok or not name:
            return None
        return name

    def short_hash(self, ref: str) -> str | None:
        result = self._git(["rev-parse", "--short", "--verify", "-q", f"{ref}^{{commit}}"])
        value = result.stdout.strip()
        return value if result.ok and value else None

    def full_hash(self, ref: str) -> str | None:
        result = self._git(["rev-parse", "--verify", "-q", f"{ref}^{{commit}}"])
        value = result.stdout.strip()
        return value if result.ok and value else None

    def describe_commit(self, commit: str) -> str:
        """Author, relative age and subject on one column-aligned line."""
        result = self._git(
            ["log", "-n", "1", "--pretty=format:%<(20)%an | %<(14)%ar | %s", commit, "--"]
        )
        if not result.ok:
            return ""
        return result.stdout.strip("\n")

    def status_entries(self) -> list[StatusEntry]:
        result = self._git(["status", "--porcelain", "-z", "--ignore-submodules=dirty"])
        if not result.ok:
            logger.debug("git status failed: %s", result.stderr.strip())
            return []
        return parse_porcelain_status(result.stdout)

    def changed_files(self) -> list[str]:
        """All dirty, staged, unmerged or untracked paths."""
        return [entry.path for entry in self.status_entries()]

    def unstaged_files(self) -> list[str]:
        """Paths whose changes are not fully staged yet."""
        return [entry.path for entry in self.status_entries() if entry.is_unstaged]

    def unmerged_files(self) -> list[str]:
        result = self._git(["diff", "--name-only", "-z", "--diff-filter=U"])
        if not result.ok:
            return []
        return [path for path in result.stdout.split("\0") if path]

    def has_unmerged_paths(self) -> bool:
        return bool(self.unmerged_files())

    def conflict_marker_report(self) -> str:
        """Raw ``git diff --check`` report against HEAD.

        ``diff --check`` exits non-zero when it finds problems, so the exit
        status is ignored and only the text is returned.
        """
        result = self._git(["diff", "--check", "HEAD"])
        return result.stdout.strip()

    def has_merge_in_progress(self) -> bool:
        result = self._git(["rev-parse", "-q", "--verify", "MERGE_HEAD"])
        return result.ok and bool(result.stdout.strip())

    def has_rebase_in_progress(self) -> bool:
        for marker in ("rebase-merge", "rebase-apply"):
            result = self._git(["rev-parse", "--git-path", marker])
            if not result.ok or not result.stdout.strip():
                continue
            path = Path(result.stdout.strip())
            if not path.is_absolute():
                path = self.repo_root / path
            if path.exists():
                return True
        return False

    def commits_reachable_from_not_in(self, include: str, exclude: str) -> list[str]:
        """Commits reachable from ``include`` that ``exclude`` cannot reach."""
        result = self._git(["rev-list", include, f"^{exclude}", "--"])
        if not result.ok:
            logger.debug("rev-list %s ^%s failed: %s", include, exclude, result.stderr.strip())
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True when ``ancestor`` is reachable from ``descendant``.

        Any git failure counts as not an ancestor.
        """
        result = self._git(["merge-base", "--is-ancestor", ancestor, descendant])
        return result.returncode == 0

    def tree_of(self, commit: str) -> str | None:
        """Tree id recorded in a commit object's header."""
        result = self._git(["cat-file", "commit", commit])
        if not result.ok:
            return None
        for line in result.stdout.splitlines():
            if line.startswith("tree "):
                return line.split(" ", 1)[1].strip()
            if not line:
                break
        return None

    def config_value(self, key: str) -> str | None:
        result = self._git(["config", "--get", key])
        value = result.stdout.strip()
        return value if result.ok and value else None

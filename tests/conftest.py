from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from tests.utils import commit_file, delete_file, git, run


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the operator's own settings out of the runs.
    monkeypatch.delenv("REBASE_VIA_MERGE_BASE", raising=False)
    monkeypatch.delenv("REBASE_VIA_MERGE_GIT_TIMEOUT", raising=False)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_EDITOR", "true")
    monkeypatch.setenv("GIT_AUTHOR_DATE", "2024-01-01T00:00:00")
    monkeypatch.setenv("GIT_COMMITTER_DATE", "2024-01-01T00:00:00")


@pytest.fixture()
def temp_repo(tmp_path: Path) -> Iterator[Path]:
    repo_dir = tmp_path / "repo"
    repo_dir.mkdir()
    run(["git", "init", "-q", "-b", "main"], cwd=repo_dir)
    run(["git", "config", "user.name", "Rebase Tester"], cwd=repo_dir)
    run(["git", "config", "user.email", "rebase@example.com"], cwd=repo_dir)
    run(["git", "config", "commit.gpgsign", "false"], cwd=repo_dir)
    commit_file(repo_dir, "a.txt", "base\n", "Initial commit")
    yield repo_dir


@pytest.fixture()
def diverged_repo(temp_repo: Path) -> Path:
    """``feature`` and ``develop`` touch different files."""
    git(temp_repo, "checkout", "-q", "-b", "develop")
    commit_file(temp_repo, "b.txt", "develop\n", "Add b on develop")
    git(temp_repo, "checkout", "-q", "main")
    git(temp_repo, "checkout", "-q", "-b", "feature")
    commit_file(temp_repo, "c.txt", "feature\n", "Add c on feature")
    return temp_repo


@pytest.fixture()
def conflicting_repo(temp_repo: Path) -> Path:
    """``feature`` and ``develop`` both rewrite a.txt."""
    git(temp_repo, "checkout", "-q", "-b", "develop")
    commit_file(temp_repo, "a.txt", "develop\n", "Rewrite a on develop")
    git(temp_repo, "checkout", "-q", "main")
    git(temp_repo, "checkout", "-q", "-b", "feature")
    commit_file(temp_repo, "a.txt", "feature\n", "Rewrite a on feature")
    return temp_repo


@pytest.fixture()
def modify_delete_repo(temp_repo: Path) -> Path:
    """``develop`` deletes a.txt while ``feature`` edits it.

    ``-X theirs`` cannot settle a modify/delete conflict, so the rebase
    stops as well as the merge.
    """
    git(temp_repo, "checkout", "-q", "-b", "develop")
    commit_file(temp_repo, "b.txt", "develop\n", "Add b on develop")
    delete_file(temp_repo, "a.txt", "Drop a on develop")
    git(temp_repo, "checkout", "-q", "main")
    git(temp_repo, "checkout", "-q", "-b", "feature")
    commit_file(temp_repo, "a.txt", "feature\n", "Rewrite a on feature")
    return temp_repo

from __future__ import annotations

import subprocess
from pathlib import Path


def run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, cwd=cwd, check=True, capture_output=True, text=True)


def git(repo: Path, *args: str) -> str:
    return run(["git", *args], cwd=repo).stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str | None = None) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    git(repo, "add", name)
    git(repo, "commit", "-m", message or f"Update {name}")
    return git(repo, "rev-parse", "HEAD")


def delete_file(repo: Path, name: str, message: str | None = None) -> str:
    git(repo, "rm", "-q", name)
    git(repo, "commit", "-m", message or f"Delete {name}")
    return git(repo, "rev-parse", "HEAD")


def tree_of(repo: Path, ref: str) -> str:
    return git(repo, "rev-parse", f"{ref}^{{tree}}")


def status_lines(repo: Path) -> list[str]:
    output = run(["git", "status", "--porcelain"], cwd=repo).stdout
    return [line for line in output.splitlines() if line.strip()]


class ScriptedPrompter:
    """Answers prompts from a script; a callable entry runs before answering."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: list[str] = []

    def __call__(self, text: str) -> str:
        self.prompts.append(text)
        if not self.responses:
            raise AssertionError(f"Unexpected prompt: {text}")
        response = self.responses.pop(0)
        if callable(response):
            return response()
        return response


def stage_all(repo: Path, files: dict[str, str] | None = None):
    """Script entry that writes ``files``, stages everything and answers 'c'."""

    def _resolve() -> str:
        for name, content in (files or {}).items():
            (repo / name).write_text(content, encoding="utf-8")
        git(repo, "add", "-A")
        return "c"

    return _resolve

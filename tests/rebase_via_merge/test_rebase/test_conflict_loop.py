"""Tests for the operator conflict resolution loop."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from rebase_via_merge.core.constants import HIDDEN_COMMIT_MESSAGE
from rebase_via_merge.core.errors import GitOperationError, InvalidRunTransition, OperatorAbort
from rebase_via_merge.core.git_ops import GitOperations
from rebase_via_merge.core.git_query import GitRepository
from rebase_via_merge.rebase.conflicts import (
    ConflictMode,
    ConflictResolutionLoop,
    LoopEvent,
    LoopState,
    next_state,
)
from rebase_via_merge.rebase.preflight import check_preconditions
from tests.utils import ScriptedPrompter, git, stage_all, status_lines


@pytest.mark.parametrize(
    ("state", "event", "expected"),
    [
        (LoopState.PROMPTING, LoopEvent.CONTINUE, LoopState.CHECKING),
        (LoopState.PROMPTING, LoopEvent.ABORT, LoopState.ABORTING),
        (LoopState.PROMPTING, LoopEvent.INVALID, LoopState.PROMPTING),
        (LoopState.CHECKING, LoopEvent.FILES_REMAIN, LoopState.PROMPTING),
        (LoopState.CHECKING, LoopEvent.ALL_STAGED, LoopState.COMPLETING),
        (LoopState.COMPLETING, LoopEvent.COMPLETED, LoopState.DONE),
        (LoopState.COMPLETING, LoopEvent.ABANDONED, LoopState.ABORTING),
    ],
)
def test_transition_table(state: LoopState, event: LoopEvent, expected: LoopState) -> None:
    assert next_state(state, event) is expected


def test_missing_transition_raises() -> None:
    with pytest.raises(InvalidRunTransition):
        next_state(LoopState.DONE, LoopEvent.CONTINUE)


def _start_hidden_merge(repo_dir: Path):
    repo = GitRepository(repo_dir)
    ops = GitOperations(repo)
    context = check_preconditions(repo, "develop").context
    ops.checkout_detached(context.branch.full_hash)
    ops.merge("develop", HIDDEN_COMMIT_MESSAGE)
    return repo, ops, context


def test_loop_reprompts_on_invalid_input_and_remaining_files(
    conflicting_repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo, ops, context = _start_hidden_merge(conflicting_repo)
    prompt = ScriptedPrompter("x", "c", stage_all(conflicting_repo, {"a.txt": "resolved\n"}))

    ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, prompt).run()

    out = capsys.readouterr().out
    assert len(prompt.prompts) == 3
    assert "You have at least one merge conflict." in out
    assert "Invalid option" in out
    assert "There are still unstaged files:" in out
    assert "leftover conflict marker" in out
    assert not repo.has_merge_in_progress()
    assert git(conflicting_repo, "log", "-1", "--pretty=%s") == HIDDEN_COMMIT_MESSAGE
    assert (conflicting_repo / "a.txt").read_text(encoding="utf-8") == "resolved\n"


def test_merge_concluded_by_operator_is_not_committed_twice(conflicting_repo: Path) -> None:
    repo, ops, context = _start_hidden_merge(conflicting_repo)

    def _commit_by_hand() -> str:
        (conflicting_repo / "a.txt").write_text("by hand\n", encoding="utf-8")
        git(conflicting_repo, "add", "a.txt")
        git(conflicting_repo, "commit", "-q", "--no-edit")
        return "c"

    ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, ScriptedPrompter(_commit_by_hand)).run()

    assert not repo.has_merge_in_progress()
    assert len(git(conflicting_repo, "rev-list", "--parents", "-n", "1", "HEAD").split()) == 3


def test_abort_restores_branch_and_exits_with_two(conflicting_repo: Path) -> None:
    head = git(conflicting_repo, "rev-parse", "feature")
    repo, ops, context = _start_hidden_merge(conflicting_repo)

    with pytest.raises(OperatorAbort) as excinfo:
        ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, ScriptedPrompter("a")).run()

    assert excinfo.value.exit_code == 2
    assert repo.current_branch_name() == "feature"
    assert git(conflicting_repo, "rev-parse", "HEAD") == head
    assert not repo.has_merge_in_progress()
    assert status_lines(conflicting_repo) == []


def test_interrupt_at_conflict_prompt_aborts(conflicting_repo: Path) -> None:
    repo, ops, context = _start_hidden_merge(conflicting_repo)

    def _interrupted(_text: str) -> str:
        raise KeyboardInterrupt

    with pytest.raises(OperatorAbort) as excinfo:
        ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, _interrupted).run()

    assert excinfo.value.exit_code == 2
    assert repo.current_branch_name() == "feature"


def _start_rebase(repo_dir: Path):
    repo = GitRepository(repo_dir)
    ops = GitOperations(repo)
    context = check_preconditions(repo, "develop").context
    ops.rebase("develop")
    assert repo.has_rebase_in_progress()
    return repo, ops, context


def _by_hand(repo_dir: Path, *args: str):
    def _run() -> str:
        git(repo_dir, *args)
        return "c"

    return _run


def test_merge_aborted_by_hand_counts_as_abort(conflicting_repo: Path, capsys: pytest.CaptureFixture[str]) -> None:
    head = git(conflicting_repo, "rev-parse", "feature")
    repo, ops, context = _start_hidden_merge(conflicting_repo)

    with pytest.raises(OperatorAbort) as excinfo:
        ConflictResolutionLoop(
            ConflictMode.MERGE, repo, ops, context, ScriptedPrompter(_by_hand(conflicting_repo, "merge", "--abort"))
        ).run()

    assert excinfo.value.exit_code == 2
    assert "The merge is no longer in progress and was not completed." in capsys.readouterr().out
    assert repo.current_branch_name() == "feature"
    assert git(conflicting_repo, "rev-parse", "HEAD") == head


def test_rebase_continued_by_hand_is_not_continued_twice(modify_delete_repo: Path) -> None:
    repo, ops, context = _start_rebase(modify_delete_repo)

    def _continue_by_hand() -> str:
        git(modify_delete_repo, "add", "-A")
        git(modify_delete_repo, "rebase", "--continue")
        return "c"

    completion = ConflictResolutionLoop(
        ConflictMode.REBASE, repo, ops, context, ScriptedPrompter(_continue_by_hand)
    ).run()

    assert completion is None
    assert not repo.has_rebase_in_progress()
    assert repo.current_branch_name() == "feature"
    assert git(modify_delete_repo, "rev-parse", "HEAD^") == git(modify_delete_repo, "rev-parse", "develop")


def test_rebase_aborted_by_hand_counts_as_abort(modify_delete_repo: Path) -> None:
    head = git(modify_delete_repo, "rev-parse", "feature")
    repo, ops, context = _start_rebase(modify_delete_repo)

    with pytest.raises(OperatorAbort) as excinfo:
        ConflictResolutionLoop(
            ConflictMode.REBASE, repo, ops, context, ScriptedPrompter(_by_hand(modify_delete_repo, "rebase", "--abort"))
        ).run()

    assert excinfo.value.exit_code == 2
    assert not repo.has_rebase_in_progress()
    assert repo.current_branch_name() == "feature"
    assert git(modify_delete_repo, "rev-parse", "HEAD") == head


def test_abort_still_exits_with_two_when_checkout_fails(
    conflicting_repo: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo, ops, context = _start_hidden_merge(conflicting_repo)
    failure = GitOperationError(["checkout", "--quiet", "feature"], 1, "error: cannot checkout")

    with patch.object(GitOperations, "checkout_branch", side_effect=failure):
        with pytest.raises(OperatorAbort) as excinfo:
            ConflictResolutionLoop(ConflictMode.MERGE, repo, ops, context, ScriptedPrompter("a")).run()

    out = capsys.readouterr().out
    assert excinfo.value.exit_code == 2
    assert "Could not check out 'feature'" in out
    assert "Aborted" in out
    assert not repo.has_merge_in_progress()

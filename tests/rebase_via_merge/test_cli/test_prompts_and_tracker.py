from __future__ import annotations

from unittest.mock import patch

import pytest
from rich.console import Console

from rebase_via_merge.cli import StepTracker
from rebase_via_merge.cli.prompts import PromptChoice, is_interactive, parse_choice, typer_prompter


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("c", PromptChoice.CONTINUE),
        (" C\n", PromptChoice.CONTINUE),
        ("continue", PromptChoice.CONTINUE),
        ("a", PromptChoice.ABORT),
        ("ABORT", PromptChoice.ABORT),
        ("", None),
        ("yes", None),
    ],
)
def test_parse_choice(raw: str, expected: PromptChoice | None) -> None:
    assert parse_choice(raw) is expected


def test_typer_prompter_accepts_empty_answer() -> None:
    with patch("rebase_via_merge.cli.prompts.typer.prompt", return_value="") as prompt:
        assert typer_prompter("Continue (c) or Abort (a)?") == ""

    prompt.assert_called_once_with("Continue (c) or Abort (a)?", default="", show_default=False)


def test_ci_environment_is_not_interactive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CI", "true")
    with patch("rebase_via_merge.cli.prompts.sys.stdin") as stdin:
        stdin.isatty.return_value = True
        assert not is_interactive()


def test_tracker_renders_statuses() -> None:
    tracker = StepTracker("Rebase via merge")
    tracker.add("merge", "Hidden merge")
    tracker.add("rebase", "Rebase [develop]")
    tracker.add("merge", "ignored duplicate")
    tracker.start("merge")
    assert tracker.running.key == "merge"

    tracker.complete("merge", "hidden commit abc")
    tracker.skip_pending("dry run")

    assert [step.status for step in tracker.steps] == ["done", "skipped"]
    assert tracker.get("rebase").detail == "dry run"
    assert tracker.running is None

    console = Console(record=True, width=120)
    console.print(tracker.render())
    text = console.export_text()
    assert "Hidden merge (hidden commit abc)" in text
    assert "Rebase [develop] (dry run)" in text


def test_tracker_records_unknown_step_on_error() -> None:
    tracker = StepTracker("t")

    tracker.error("x", "boom")

    assert tracker.get("x").status == "error"
    assert tracker.get("x").label == "x"

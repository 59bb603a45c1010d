"""Operator prompts for the pre-flight confirmation and conflict loops."""

from __future__ import annotations

import logging
import os
import sys
from enum import StrEnum
from typing import Callable

import typer

logger = logging.getLogger(__name__)

Prompter = Callable[[str], str]

CONTINUE_OR_ABORT = "Continue (c) or Abort (a)?"

_CI_ENV_VARS = [
    "CI",
    "GITHUB_ACTIONS",
    "JENKINS_HOME",
    "GITLAB_CI",
    "CIRCLECI",
    "TRAVIS",
    "BUILDKITE",
]


class PromptChoice(StrEnum):
    CONTINUE = "continue"
    ABORT = "abort"


_CHOICE_ALIASES = {
    "c": PromptChoice.CONTINUE,
    "continue": PromptChoice.CONTINUE,
    "a": PromptChoice.ABORT,
    "abort": PromptChoice.ABORT,
}


def parse_choice(response: str) -> PromptChoice | None:
    """Map raw operator input to a choice; None for anything unrecognized."""
    return _CHOICE_ALIASES.get(response.strip().lower())


def typer_prompter(text: str) -> str:
    """Default prompter; an empty line comes back as an empty string."""
    return typer.prompt(text, default="", show_default=False)


def is_interactive() -> bool:
    """True when stdin is a terminal and no CI environment is detected."""
    if not sys.stdin.isatty():
        return False
    for var in _CI_ENV_VARS:
        if os.getenv(var):
            return False
    return True


def log_non_interactive_context() -> None:
    if not is_interactive():
        logger.info("Non-interactive mode detected")
        logger.info("  stdin.isatty(): %s", sys.stdin.isatty())
        detected_ci = [k for k in _CI_ENV_VARS if os.getenv(k)]
        if detected_ci:
            logger.info("  CI env vars: %s", detected_ci)


__all__ = [
    "CONTINUE_OR_ABORT",
    "PromptChoice",
    "Prompter",
    "parse_choice",
    "typer_prompter",
    "is_interactive",
    "log_non_interactive_context",
]

"""Shared constants for the rebase-via-merge workflow."""

from __future__ import annotations

DEFAULT_BASE_BRANCH = "origin/develop"

HIDDEN_COMMIT_MESSAGE = "Hidden orphaned commit to save merge result."
RECONCILE_COMMIT_TEMPLATE = "Rebase via merge. '{branch}' rebased on '{base}'."

BASE_ENV_VAR = "REBASE_VIA_MERGE_BASE"
GIT_TIMEOUT_ENV_VAR = "REBASE_VIA_MERGE_GIT_TIMEOUT"
BASE_GIT_CONFIG_KEY = "rebase-via-merge.base"

DEFAULT_GIT_TIMEOUT = 120

EXIT_PRECONDITION = 1
EXIT_CONFLICT_ABORT = 2

__all__ = [
    "DEFAULT_BASE_BRANCH",
    "HIDDEN_COMMIT_MESSAGE",
    "RECONCILE_COMMIT_TEMPLATE",
    "BASE_ENV_VAR",
    "GIT_TIMEOUT_ENV_VAR",
    "BASE_GIT_CONFIG_KEY",
    "DEFAULT_GIT_TIMEOUT",
    "EXIT_PRECONDITION",
    "EXIT_CONFLICT_ABORT",
]

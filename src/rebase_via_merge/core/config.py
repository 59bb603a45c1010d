"""Run configuration: base branch and git timeout resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from rebase_via_merge.core.constants import (
    BASE_ENV_VAR,
    BASE_GIT_CONFIG_KEY,
    DEFAULT_BASE_BRANCH,
    DEFAULT_GIT_TIMEOUT,
    GIT_TIMEOUT_ENV_VAR,
)

logger = logging.getLogger(__name__)

__all__ = ["RunConfig", "resolve_base_branch", "resolve_git_timeout", "load_config"]


@dataclass(frozen=True)
class RunConfig:
    """Settings for a single run."""

    repo_root: Path
    base_branch: str
    git_timeout: int = DEFAULT_GIT_TIMEOUT
    assume_yes: bool = False
    dry_run: bool = False


def resolve_git_timeout() -> int:
    """Return the git timeout from the environment, or the default."""
    raw_value = os.getenv(GIT_TIMEOUT_ENV_VAR, "").strip()
    if not raw_value:
        return DEFAULT_GIT_TIMEOUT
    try:
        timeout = int(raw_value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", GIT_TIMEOUT_ENV_VAR, raw_value)
        return DEFAULT_GIT_TIMEOUT
    if timeout <= 0:
        logger.warning("Ignoring %s=%r: must be positive", GIT_TIMEOUT_ENV_VAR, raw_value)
        return DEFAULT_GIT_TIMEOUT
    return timeout


def resolve_base_branch(cli_value: str | None, git_config_value: str | None = None) -> str:
    """Pick the base branch.

    Precedence: CLI argument, ``REBASE_VIA_MERGE_BASE``, git config
    ``rebase-via-merge.base``, then ``origin/develop``.
    """
    if cli_value and cli_value.strip():
        return cli_value.strip()
    if env_value := os.getenv(BASE_ENV_VAR, "").strip():
        return env_value
    if git_config_value and git_config_value.strip():
        return git_config_value.strip()
    return DEFAULT_BASE_BRANCH


def load_config(
    repo_root: Path,
    base: str | None = None,
    *,
    assume_yes: bool = False,
    dry_run: bool = False,
) -> RunConfig:
    """Build a RunConfig, consulting git config for the default base."""
    from rebase_via_merge.core.git_query import GitRepository

    timeout = resolve_git_timeout()
    git_config_value = None
    if not (base and base.strip()) and not os.getenv(BASE_ENV_VAR, "").strip():
        git_config_value = GitRepository(repo_root, timeout=timeout).config_value(BASE_GIT_CONFIG_KEY)

    base_branch = resolve_base_branch(base, git_config_value)
    logger.debug("Resolved base branch %r (timeout=%ss)", base_branch, timeout)
    return RunConfig(
        repo_root=repo_root,
        base_branch=base_branch,
        git_timeout=timeout,
        assume_yes=assume_yes,
        dry_run=dry_run,
    )

"""Run-scoped values shared between stages.

Everything here is captured once and passed explicitly; stages never
re-read the branch or base from git after the pre-flight checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from rebase_via_merge.core.constants import RECONCILE_COMMIT_TEMPLATE
from rebase_via_merge.core.errors import InvalidRunTransition

__all__ = [
    "BranchRef",
    "BaseRef",
    "HiddenCommit",
    "RunContext",
    "RunState",
    "RunStateMachine",
]


@dataclass(frozen=True)
class BranchRef:
    """The operator's branch as it was when the run started."""

    name: str
    short_hash: str
    full_hash: str


@dataclass(frozen=True)
class BaseRef:
    name: str
    short_hash: str


@dataclass(frozen=True)
class HiddenCommit:
    """Merge result built on a detached HEAD, reachable only by this hash."""

    hash: str

    @property
    def tree_ish(self) -> str:
        return f"{self.hash}^{{tree}}"

    @property
    def short(self) -> str:
        return self.hash[:10]


@dataclass(frozen=True)
class RunContext:
    repo_root: Path
    branch: BranchRef
    base: BaseRef

    @property
    def reconcile_message(self) -> str:
        return RECONCILE_COMMIT_TEMPLATE.format(branch=self.branch.name, base=self.base.name)


class RunState(StrEnum):
    VALIDATING = "validating"
    MERGING = "merging"
    MERGE_CONFLICT = "merge_conflict"
    REBASING = "rebasing"
    REBASE_CONFLICT = "rebase_conflict"
    RECONCILING = "reconciling"
    DONE = "done"
    ABORTED = "aborted"


# Forward edges plus the loop-internal returns from a conflict state to the
# stage that raised it. ABORTED is reachable from every non-terminal state.
_ALLOWED: dict[RunState, frozenset[RunState]] = {
    RunState.VALIDATING: frozenset({RunState.MERGING}),
    RunState.MERGING: frozenset({RunState.MERGE_CONFLICT, RunState.REBASING}),
    RunState.MERGE_CONFLICT: frozenset({RunState.MERGING}),
    RunState.REBASING: frozenset({RunState.REBASE_CONFLICT, RunState.RECONCILING}),
    RunState.REBASE_CONFLICT: frozenset({RunState.REBASING}),
    RunState.RECONCILING: frozenset({RunState.DONE}),
    RunState.DONE: frozenset(),
    RunState.ABORTED: frozenset(),
}

_TERMINAL = frozenset({RunState.DONE, RunState.ABORTED})


@dataclass
class RunStateMachine:
    """Tracks the overall run state and rejects out-of-order transitions."""

    state: RunState = RunState.VALIDATING
    history: list[RunState] = field(default_factory=lambda: [RunState.VALIDATING])

    def advance(self, target: RunState) -> None:
        allowed = _ALLOWED[self.state]
        if target == RunState.ABORTED and self.state not in _TERMINAL:
            allowed = allowed | {RunState.ABORTED}
        if target not in allowed:
            raise InvalidRunTransition(f"Cannot move from {self.state.value} to {target.value}")
        self.state = target
        self.history.append(target)

    @property
    def in_conflict(self) -> bool:
        return self.state in (RunState.MERGE_CONFLICT, RunState.REBASE_CONFLICT)

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL

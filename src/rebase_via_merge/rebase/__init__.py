"""Rebase-via-merge engine.

Modules:
    context: Run-scoped values and the run state machine
    preflight: Pre-flight validation before any mutation
    conflicts: Interactive conflict resolution loop
    stages: Hidden merge, rebase and reconciliation stages
    executor: Orchestration of the whole run
"""

from __future__ import annotations

from .executor import RebaseResult, execute_rebase_via_merge

__all__ = ["RebaseResult", "execute_rebase_via_merge"]

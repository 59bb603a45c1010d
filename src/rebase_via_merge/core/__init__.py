"""Core utilities: git adapters, configuration and errors."""

from .config import RunConfig, load_config
from .errors import (
    GitOperationError,
    InvalidRunTransition,
    OperatorAbort,
    PreflightError,
    RebaseViaMergeError,
)
from .git_ops import GitOperations, OperationOutcome, OperationResult
from .git_query import GitRepository

__all__ = [
    "RunConfig",
    "load_config",
    "GitRepository",
    "GitOperations",
    "OperationOutcome",
    "OperationResult",
    "RebaseViaMergeError",
    "PreflightError",
    "OperatorAbort",
    "GitOperationError",
    "InvalidRunTransition",
]

"""Read-only version-control access used to merge branch-local history logs."""

from history_merge.vcs.git_engine import (
    GitCommandError,
    GitEngine,
    GitEngineError,
    GitFileNotFoundError,
    RevisionResolutionError,
    SanitizationError,
)

__all__ = [
    "GitCommandError",
    "GitEngine",
    "GitEngineError",
    "GitFileNotFoundError",
    "RevisionResolutionError",
    "SanitizationError",
]

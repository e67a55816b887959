"""Stable constants shared across history-merge modules."""

from __future__ import annotations

from typing import Final

# Schema version for ``history-merge.toml``.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Literal identity value for records whose revision is not known yet.
PLACEHOLDER_IDENTITY: Final[str] = "HEAD"

# Default history layout (repository-relative).
DEFAULT_HISTORY_DIR: Final[str] = ".history"
DEFAULT_COMMIT_HISTORY_FILE: Final[str] = "{branch}/commit-history.json"
DEFAULT_TDD_LOG_FILE: Final[str] = "{branch}/tdd-log.json"

# Persisted JSON indentation.
JSON_INDENT: Final[int] = 2

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_COMMIT_HISTORY_FILE",
    "DEFAULT_HISTORY_DIR",
    "DEFAULT_TDD_LOG_FILE",
    "JSON_INDENT",
    "PLACEHOLDER_IDENTITY",
]

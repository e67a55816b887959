"""Merge engine for branch-local history arrays."""

from history_merge.merge.engine import (
    MergeOutcome,
    PlaceholderResolution,
    merge_records,
    resolve_placeholder,
    rewrite_commit_url,
    sort_records,
    union_by_identity,
)
from history_merge.merge.kinds import COMMIT_HISTORY, TDD_LOG, RecordKind

__all__ = [
    "COMMIT_HISTORY",
    "TDD_LOG",
    "MergeOutcome",
    "PlaceholderResolution",
    "RecordKind",
    "merge_records",
    "resolve_placeholder",
    "rewrite_commit_url",
    "sort_records",
    "union_by_identity",
]

"""Placeholder resolution, deduplicating union, and chronological sort of history records."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from history_merge.constants import PLACEHOLDER_IDENTITY
from history_merge.merge.kinds import RecordKind
from history_merge.vcs.git_engine import GitEngineError

Record = dict[str, Any]
RevisionResolver = Callable[[str], str]
PlaceholderStatus = Literal["absent", "resolved", "dropped"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlaceholderResolution:
    """What happened to the source array's ``HEAD`` record."""

    status: PlaceholderStatus
    revision: str | None = None
    index: int | None = None
    unresolved_extras: int = 0


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """Result of merging one source array into one target array."""

    records: list[Record]
    source_count: int
    target_count: int
    new_count: int
    skipped_without_identity: int
    placeholder: PlaceholderResolution

    @property
    def merged_count(self) -> int:
        return len(self.records)


def rewrite_commit_url(url: str, revision: str) -> str:
    """Point a ``.../commit/<sha>`` URL at ``revision``."""
    base = url.split("/commit/", 1)[0]
    return f"{base}/commit/{revision}"


def resolve_placeholder(
    kind: RecordKind,
    records: Sequence[Record],
    *,
    source_branch: str,
    resolve_revision: RevisionResolver,
) -> tuple[list[Record], PlaceholderResolution]:
    """Replace the first ``HEAD`` identity with ``source_branch``'s revision.

    Only the first placeholder found by forward scan is resolved; later ones are left
    untouched and counted in ``unresolved_extras``. If the branch cannot be resolved
    the placeholder record is dropped. ``records`` is never mutated.
    """
    field = kind.placeholder_field
    indices = [
        position
        for position, record in enumerate(records)
        if isinstance(record, Mapping) and record.get(field) == PLACEHOLDER_IDENTITY
    ]
    output = list(records)
    if not indices:
        return output, PlaceholderResolution(status="absent")

    index = indices[0]
    extras = len(indices) - 1
    if extras:
        logger.warning(
            "Found %d %s tagged '%s' on '%s'; only the first is resolved.",
            len(indices),
            kind.label,
            PLACEHOLDER_IDENTITY,
            source_branch,
        )

    try:
        revision = resolve_revision(source_branch)
    except GitEngineError as exc:
        logger.error(
            "Could not resolve SHA for branch '%s'. Skipping %s record in %s. (%s)",
            source_branch,
            PLACEHOLDER_IDENTITY,
            kind.label,
            exc,
        )
        del output[index]
        return output, PlaceholderResolution(
            status="dropped", index=index, unresolved_extras=extras
        )

    output[index] = _with_revision(kind, output[index], revision)
    logger.debug("Resolved %s placeholder to %s", kind.label, revision)
    return output, PlaceholderResolution(
        status="resolved", revision=revision, index=index, unresolved_extras=extras
    )


def union_by_identity(
    kind: RecordKind,
    source: Sequence[Record],
    target: Sequence[Record],
) -> tuple[list[Record], int, int]:
    """Append source records whose identity is not yet present.

    Returns ``(records, appended, skipped_without_identity)``. Target records are kept
    as-is; source duplicates, including duplicates within ``source``, lose to the
    first copy seen.
    """
    merged = list(target)
    seen: set[object] = {
        kind.identity(record) for record in target if isinstance(record, Mapping)
    }
    appended = 0
    skipped = 0
    for record in source:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        identity = kind.identity(record)
        if identity is None:
            skipped += 1
            continue
        if identity in seen:
            continue
        merged.append(record)
        seen.add(identity)
        appended += 1
    return merged, appended, skipped


def sort_records(kind: RecordKind, records: Sequence[Record]) -> list[Record]:
    """Return ``records`` ordered ascending by ``kind``'s ordering key."""
    return sorted(records, key=lambda record: _order_key(kind, record))


def merge_records(
    kind: RecordKind,
    source: Sequence[Record],
    target: Sequence[Record],
    *,
    source_branch: str,
    resolve_revision: RevisionResolver,
) -> MergeOutcome:
    """Resolve, deduplicate, and sort ``source`` into ``target``."""
    resolved, placeholder = resolve_placeholder(
        kind, source, source_branch=source_branch, resolve_revision=resolve_revision
    )
    merged, appended, skipped = union_by_identity(kind, resolved, target)
    if skipped:
        logger.debug("Skipped %d %s without an identity", skipped, kind.label)
    return MergeOutcome(
        records=sort_records(kind, merged),
        source_count=len(source),
        target_count=len(target),
        new_count=appended,
        skipped_without_identity=skipped,
        placeholder=placeholder,
    )


def _with_revision(kind: RecordKind, record: Record, revision: str) -> Record:
    updated = copy.deepcopy(record)
    updated[kind.placeholder_field] = revision
    if kind.url_path is None:
        return updated

    *parents, leaf = kind.url_path
    container: object = updated
    for part in parents:
        container = container.get(part) if isinstance(container, dict) else None
    if isinstance(container, dict):
        url = container.get(leaf)
        if isinstance(url, str) and url:
            container[leaf] = rewrite_commit_url(url, revision)
    return updated


def _order_key(kind: RecordKind, record: object) -> float:
    if not isinstance(record, Mapping):
        return float("-inf")
    return kind.order_key(record)


__all__ = [
    "MergeOutcome",
    "PlaceholderResolution",
    "PlaceholderStatus",
    "RevisionResolver",
    "merge_records",
    "resolve_placeholder",
    "rewrite_commit_url",
    "sort_records",
    "union_by_identity",
]

"""Record kinds: identity, ordering, and placeholder rules per history log."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Final

Record = Mapping[str, Any]
IdentityFn = Callable[[Record], str | None]
OrderKeyFn = Callable[[Record], float]

_EARLIEST: Final[float] = -math.inf


@dataclass(frozen=True, slots=True)
class RecordKind:
    """Field-level rules that parameterize one merge pipeline.

    ``placeholder_field`` holds the revision identifier and may carry ``"HEAD"``.
    ``url_path`` names a nested string field whose ``/commit/<sha>`` suffix must
    follow the identifier when a placeholder is resolved.
    """

    name: str
    label: str
    placeholder_field: str
    identity: IdentityFn
    order_key: OrderKeyFn
    url_path: tuple[str, ...] | None = None


def commit_identity(record: Record) -> str | None:
    """Non-empty string ``sha``; anything else leaves the commit without identity."""
    sha = record.get("sha")
    return sha if isinstance(sha, str) and sha else None


def tdd_identity(record: Record) -> str:
    """Non-empty string ``commitId``, else ``"<timestamp>-<testId>"`` verbatim."""
    commit_id = record.get("commitId")
    if isinstance(commit_id, str) and commit_id:
        return commit_id
    return f"{record.get('timestamp')}-{record.get('testId')}"


def commit_order_key(record: Record) -> float:
    """Epoch seconds of ``commit.date``; missing or unparseable dates sort first."""
    commit = record.get("commit")
    raw = commit.get("date") if isinstance(commit, Mapping) else None
    parsed = parse_iso8601(raw) if isinstance(raw, str) else None
    if parsed is None:
        return _EARLIEST
    return parsed.timestamp()


def tdd_order_key(record: Record) -> float:
    """``commitTimestamp`` when truthy, else ``timestamp``; non-numeric sorts first."""
    value = record.get("commitTimestamp") or record.get("timestamp")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _EARLIEST
    if math.isnan(value):
        return _EARLIEST
    return float(value)


def parse_iso8601(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


COMMIT_HISTORY: Final[RecordKind] = RecordKind(
    name="commit_history",
    label="commits",
    placeholder_field="sha",
    identity=commit_identity,
    order_key=commit_order_key,
    url_path=("commit", "url"),
)

TDD_LOG: Final[RecordKind] = RecordKind(
    name="tdd_log",
    label="TDD log entries",
    placeholder_field="commitId",
    identity=tdd_identity,
    order_key=tdd_order_key,
)

__all__ = [
    "COMMIT_HISTORY",
    "TDD_LOG",
    "IdentityFn",
    "OrderKeyFn",
    "RecordKind",
    "commit_identity",
    "commit_order_key",
    "parse_iso8601",
    "tdd_identity",
    "tdd_order_key",
]

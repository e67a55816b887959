"""
history-merge — JSON array storage.

Purpose
- Read history arrays from the working tree or from a branch without checking it out.
- Write history arrays back as indented JSON.

Functional requirements
- Every failure is reported through logging and degrades to an empty array (reads)
  or ``False`` (writes); nothing here raises for missing or malformed data.
- Writes replace the whole file atomically so a failed write keeps the old content.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

from history_merge.constants import JSON_INDENT
from history_merge.utils.fs import atomic_write
from history_merge.vcs.git_engine import GitEngineError, GitFileNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from history_merge.vcs.git_engine import GitEngine

Record = dict[str, Any]

logger = logging.getLogger(__name__)


class RecordDecodeError(ValueError):
    """Raised when stored text is not a JSON array."""


def decode_records(text: str) -> list[Record]:
    """Parse ``text`` as a JSON array of records."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RecordDecodeError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, list):
        raise RecordDecodeError(f"expected a JSON array, got {type(payload).__name__}")
    return payload


def encode_records(records: Sequence[Record]) -> str:
    """Serialize records the way history logs are stored on disk."""
    return json.dumps(list(records), indent=JSON_INDENT, ensure_ascii=False) + "\n"


def read_from_filesystem(path: Path | str) -> list[Record]:
    """Return the array stored at ``path``, or ``[]`` if it is missing or unreadable."""
    target = Path(path)
    if not target.exists():
        logger.debug("No history file at %s", target)
        return []
    try:
        return decode_records(target.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, RecordDecodeError) as exc:
        logger.error(
            "Error reading or parsing JSON file from filesystem: %s (%s)",
            target,
            exc,
            extra={"path": str(target)},
        )
        return []


def read_from_revision(git: GitEngine, branch: str, path: PurePosixPath | str) -> list[Record]:
    """Return the array stored at ``path`` on ``branch``, or ``[]``.

    A file that does not exist on the branch is an expected condition and is logged
    at INFO; other failures are logged as errors.
    """
    try:
        text = git.show_file(branch, path)
    except GitFileNotFoundError:
        logger.info("File '%s' not found on branch '%s'. Assuming empty history.", path, branch)
        return []
    except (GitEngineError, OSError) as exc:
        logger.error("Could not read '%s' from branch '%s': %s", path, branch, exc)
        return []
    except UnicodeDecodeError as exc:
        logger.error("File '%s' on branch '%s' is not valid UTF-8: %s", path, branch, exc)
        return []

    try:
        return decode_records(text)
    except RecordDecodeError as exc:
        logger.error("Error parsing JSON file '%s' from branch '%s': %s", path, branch, exc)
        return []


def write_records(path: Path | str, records: Sequence[Record]) -> bool:
    """Overwrite ``path`` with ``records``; return ``False`` if the write failed."""
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(target, encode_records(records))
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error writing to JSON file: %s (%s)", target, exc)
        return False
    return True


__all__ = [
    "Record",
    "RecordDecodeError",
    "decode_records",
    "encode_records",
    "read_from_filesystem",
    "read_from_revision",
    "write_records",
]

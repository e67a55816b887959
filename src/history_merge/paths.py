"""Branch name to history file path mapping."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import PurePosixPath

from history_merge.constants import (
    DEFAULT_COMMIT_HISTORY_FILE,
    DEFAULT_HISTORY_DIR,
    DEFAULT_TDD_LOG_FILE,
)

_UNSAFE_SLUG_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True, slots=True)
class HistoryPaths:
    """Repository-relative locations of one branch's history logs."""

    commit_history: PurePosixPath
    tdd_log: PurePosixPath


def branch_slug(branch: str) -> str:
    """Return a single path component derived from ``branch``.

    ``feature/login`` becomes ``feature-login``; runs of unsafe characters collapse
    to one dash.
    """
    slug = _UNSAFE_SLUG_CHARS.sub("-", branch.strip()).strip("-")
    if slug in {"", ".", ".."}:
        raise ValueError(f"branch name {branch!r} does not map to a usable path")
    return slug


def history_paths_for(
    branch: str, paths_config: Mapping[str, object] | None = None
) -> HistoryPaths:
    """Return the commit-history and TDD-log paths for ``branch``."""
    cfg = dict(paths_config or {})
    history_dir = str(cfg.get("history_dir", DEFAULT_HISTORY_DIR))
    commit_template = str(cfg.get("commit_history_file", DEFAULT_COMMIT_HISTORY_FILE))
    tdd_template = str(cfg.get("tdd_log_file", DEFAULT_TDD_LOG_FILE))

    slug = branch_slug(branch)
    return HistoryPaths(
        commit_history=_render(history_dir, commit_template, slug),
        tdd_log=_render(history_dir, tdd_template, slug),
    )


def _render(history_dir: str, template: str, slug: str) -> PurePosixPath:
    return PurePosixPath(f"{history_dir}/{template}".format(branch=slug))


__all__ = ["HistoryPaths", "branch_slug", "history_paths_for"]

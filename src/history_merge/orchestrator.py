"""
history-merge — merge orchestration.

Purpose
- Merge the commit history and the TDD log of a source branch into the target
  branch's working-tree copies, one record kind at a time.

Functional requirements
- Source arrays are read from the source branch's stored revision; target arrays
  from the working tree.
- A failure while merging one record kind is logged and reported but never stops
  the other kind from running.
- Cleanup only reminds the operator; files committed on the source branch are not
  removed because that branch is not checked out.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from history_merge.merge.engine import merge_records
from history_merge.merge.kinds import COMMIT_HISTORY, TDD_LOG, RecordKind
from history_merge.observability.logging import correlation_scope
from history_merge.paths import HistoryPaths, history_paths_for
from history_merge.storage.json_store import (
    read_from_filesystem,
    read_from_revision,
    write_records,
)

if TYPE_CHECKING:
    from history_merge.merge.engine import PlaceholderStatus
    from history_merge.vcs.git_engine import GitEngine

logger = logging.getLogger(__name__)

PathResolver = Callable[[str], HistoryPaths]


@dataclass(slots=True)
class MergeReport:
    """Per-kind outcome surfaced to the CLI."""

    kind: str
    source_path: str
    target_path: str
    source_count: int = 0
    target_count: int = 0
    new_count: int = 0
    merged_count: int = 0
    placeholder: PlaceholderStatus = "absent"
    resolved_revision: str | None = None
    written: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind,
            "source_path": self.source_path,
            "target_path": self.target_path,
            "source_count": self.source_count,
            "target_count": self.target_count,
            "new_count": self.new_count,
            "merged_count": self.merged_count,
            "placeholder": self.placeholder,
            "resolved_revision": self.resolved_revision,
            "written": self.written,
            "error": self.error,
        }


@dataclass(slots=True)
class MergeSummary:
    source_branch: str
    target_branch: str
    dry_run: bool
    reports: list[MergeReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(report.ok for report in self.reports)

    def as_dict(self) -> dict[str, object]:
        return {
            "source_branch": self.source_branch,
            "target_branch": self.target_branch,
            "dry_run": self.dry_run,
            "ok": self.ok,
            "reports": [report.as_dict() for report in self.reports],
        }


class HistoryMerger:
    """Merge a source branch's history logs into the target branch's working tree."""

    def __init__(
        self,
        git: GitEngine,
        *,
        paths_config: Mapping[str, object] | None = None,
        path_resolver: PathResolver | None = None,
        dry_run: bool = False,
    ) -> None:
        self.git = git
        self.repo_root = git.repo_path
        self.dry_run = dry_run
        self._paths_config = dict(paths_config or {})
        self._path_resolver = path_resolver

    def run(self, source_branch: str, target_branch: str) -> MergeSummary:
        """Merge commit history then TDD log; always attempts both."""
        logger.info("Merging history from '%s' into '%s'...", source_branch, target_branch)
        summary = MergeSummary(
            source_branch=source_branch, target_branch=target_branch, dry_run=self.dry_run
        )

        source_paths = self._paths_for(source_branch)
        target_paths = self._paths_for(target_branch)
        if source_paths == target_paths:
            raise ValueError(
                f"branches '{source_branch}' and '{target_branch}' map to the same history "
                f"files ({source_paths.commit_history.parent}); refusing to merge a log into itself"
            )

        plan: tuple[tuple[RecordKind, PurePosixPath, PurePosixPath], ...] = (
            (COMMIT_HISTORY, source_paths.commit_history, target_paths.commit_history),
            (TDD_LOG, source_paths.tdd_log, target_paths.tdd_log),
        )
        for kind, source_path, target_path in plan:
            with correlation_scope(
                record_kind=kind.name,
                source_branch=source_branch,
                target_branch=target_branch,
            ):
                summary.reports.append(
                    self.merge_kind(
                        kind,
                        source_branch=source_branch,
                        target_branch=target_branch,
                        source_path=source_path,
                        target_path=target_path,
                    )
                )

        if not self.dry_run:
            self._remind_cleanup(source_branch)
        return summary

    def merge_kind(
        self,
        kind: RecordKind,
        *,
        source_branch: str,
        target_branch: str,
        source_path: PurePosixPath,
        target_path: PurePosixPath,
    ) -> MergeReport:
        """Merge one record kind; exceptions are captured in the returned report."""
        report = MergeReport(
            kind=kind.name,
            source_path=source_path.as_posix(),
            target_path=target_path.as_posix(),
        )
        logger.info("--- PROCESSING %s ---", kind.name.replace("_", " ").upper())
        try:
            source = read_from_revision(self.git, source_branch, source_path)
            target_file = self._working_tree_path(target_path)
            target = read_from_filesystem(target_file)
            logger.info(
                "Found %d %s in source branch ('%s').", len(source), kind.label, source_branch
            )
            logger.info(
                "Found %d %s in target branch ('%s').", len(target), kind.label, target_branch
            )

            outcome = merge_records(
                kind,
                source,
                target,
                source_branch=source_branch,
                resolve_revision=self.git.resolve_revision,
            )
            report.source_count = outcome.source_count
            report.target_count = outcome.target_count
            report.new_count = outcome.new_count
            report.merged_count = outcome.merged_count
            report.placeholder = outcome.placeholder.status
            report.resolved_revision = outcome.placeholder.revision

            if self.dry_run:
                logger.info(
                    "Dry run: would merge %d new %s into '%s'.",
                    outcome.new_count,
                    kind.label,
                    report.target_path,
                )
                return report

            report.written = write_records(target_file, outcome.records)
            if report.written:
                logger.info(
                    "Merged %d new %s into '%s'.",
                    outcome.new_count,
                    kind.label,
                    report.target_path,
                )
            else:
                report.error = f"failed to write {report.target_path}"
        except Exception as exc:  # noqa: BLE001 - one record kind must not abort the other.
            logger.exception("Merging %s failed", kind.label)
            report.error = str(exc) or exc.__class__.__name__
        return report

    def _paths_for(self, branch: str) -> HistoryPaths:
        if self._path_resolver is not None:
            return self._path_resolver(branch)
        return history_paths_for(branch, self._paths_config)

    def _working_tree_path(self, path: PurePosixPath) -> Path:
        return self.repo_root / Path(path)

    def _remind_cleanup(self, source_branch: str) -> None:
        logger.info("Cleanup complete. You can now safely delete the '%s' branch.", source_branch)
        logger.info(
            "Note: The history files from '%s' are not deleted from the branch itself.",
            source_branch,
        )


__all__ = ["HistoryMerger", "MergeReport", "MergeSummary", "PathResolver"]

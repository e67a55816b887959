"""
history-merge — unit tests for merge orchestration over a real repository.

Purpose
- Validate the end-to-end merge of both record kinds from a source branch into the
  checked-out target's working tree, including failure isolation and dry runs.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from typing import TYPE_CHECKING, Any

import pytest

import history_merge.orchestrator as orchestrator_module
from history_merge.merge.kinds import COMMIT_HISTORY
from history_merge.orchestrator import HistoryMerger
from history_merge.vcs.git_engine import GitEngine, RevisionResolutionError

if TYPE_CHECKING:
    from pathlib import Path

SOURCE_COMMITS = [
    {"sha": "c1", "commit": {"date": "2024-01-01T10:00:00Z", "url": "https://x/commit/c1"}},
    {"sha": "HEAD", "commit": {"date": "2024-01-03T10:00:00Z", "url": "https://x/commit/HEAD"}},
]
TARGET_COMMITS = [
    {"sha": "c0", "commit": {"date": "2023-12-31T10:00:00Z"}},
    {"sha": "c1", "commit": {"date": "2024-01-01T10:00:00Z", "message": "kept"}},
]
SOURCE_TDD = [
    {"commitId": "HEAD", "timestamp": 300, "testId": "t-3"},
    {"timestamp": 100, "testId": "t-1"},
]
TARGET_TDD = [{"commitId": "c0", "timestamp": 200, "testId": "t-2"}]


def run_git(cwd: Path, *args: str) -> str:
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"
    completed = subprocess.run(
        ["git", *args], cwd=cwd, env=env, text=True, capture_output=True, check=True
    )
    return completed.stdout


def _dump(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _load(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture(autouse=True)
def isolated_git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    """Repository on ``main`` with target logs in the working tree and a ``feature`` branch."""
    root = tmp_path / "repo"
    root.mkdir()
    run_git(root, "init", "--initial-branch", "main")
    run_git(root, "config", "user.name", "history-merge tests")
    run_git(root, "config", "user.email", "tests@example.invalid")
    (root / "README.md").write_text("hello\n", encoding="utf-8")
    run_git(root, "add", "--all")
    run_git(root, "commit", "-m", "init")

    run_git(root, "checkout", "-b", "feature")
    _dump(root / ".history" / "feature" / "commit-history.json", SOURCE_COMMITS)
    _dump(root / ".history" / "feature" / "tdd-log.json", SOURCE_TDD)
    run_git(root, "add", "--all")
    run_git(root, "commit", "-m", "record history")
    run_git(root, "checkout", "main")

    _dump(root / ".history" / "main" / "commit-history.json", TARGET_COMMITS)
    _dump(root / ".history" / "main" / "tdd-log.json", TARGET_TDD)
    return root


def test_merges_both_kinds_into_target_working_tree(repo: Path) -> None:
    feature_sha = run_git(repo, "rev-parse", "feature").strip()

    summary = HistoryMerger(GitEngine(repo)).run("feature", "main")

    assert summary.ok
    commits = _load(repo / ".history" / "main" / "commit-history.json")
    assert commits == [
        {"sha": "c0", "commit": {"date": "2023-12-31T10:00:00Z"}},
        {"sha": "c1", "commit": {"date": "2024-01-01T10:00:00Z", "message": "kept"}},
        {
            "sha": feature_sha,
            "commit": {
                "date": "2024-01-03T10:00:00Z",
                "url": f"https://x/commit/{feature_sha}",
            },
        },
    ]
    tdd = _load(repo / ".history" / "main" / "tdd-log.json")
    assert [entry["testId"] for entry in tdd] == ["t-1", "t-2", "t-3"]
    assert tdd[2]["commitId"] == feature_sha

    commit_report, tdd_report = summary.reports
    assert (commit_report.source_count, commit_report.target_count) == (2, 2)
    assert commit_report.new_count == 1
    assert commit_report.merged_count == 3
    assert commit_report.placeholder == "resolved"
    assert commit_report.resolved_revision == feature_sha
    assert tdd_report.new_count == 2
    assert tdd_report.written


def test_written_file_uses_two_space_indent(repo: Path) -> None:
    HistoryMerger(GitEngine(repo)).run("feature", "main")

    text = (repo / ".history" / "main" / "commit-history.json").read_text(encoding="utf-8")
    assert text.startswith('[\n  {\n    "sha": "c0"')


def test_second_run_is_idempotent(repo: Path) -> None:
    merger = HistoryMerger(GitEngine(repo))
    merger.run("feature", "main")
    first = _load(repo / ".history" / "main" / "commit-history.json")

    summary = merger.run("feature", "main")

    assert _load(repo / ".history" / "main" / "commit-history.json") == first
    assert summary.reports[0].new_count == 0


def test_source_branch_working_tree_is_never_consulted(repo: Path) -> None:
    _dump(repo / ".history" / "feature" / "commit-history.json", [{"sha": "local-only"}])

    HistoryMerger(GitEngine(repo)).run("feature", "main")

    shas = [record["sha"] for record in _load(repo / ".history" / "main" / "commit-history.json")]
    assert "local-only" not in shas


def test_missing_source_files_leave_target_content(repo: Path) -> None:
    run_git(repo, "branch", "empty", "main")

    summary = HistoryMerger(GitEngine(repo)).run("empty", "main")

    assert summary.ok
    assert _load(repo / ".history" / "main" / "tdd-log.json") == TARGET_TDD
    assert summary.reports[0].source_count == 0


def test_target_files_are_created_when_absent(repo: Path) -> None:
    summary = HistoryMerger(GitEngine(repo)).run("feature", "release/1.0")

    assert summary.ok
    created = _load(repo / ".history" / "release-1.0" / "tdd-log.json")
    assert [entry["testId"] for entry in created] == ["t-1", "t-3"]


def test_write_failure_in_one_kind_does_not_stop_the_other(repo: Path) -> None:
    blocked = repo / ".history" / "main" / "tdd-log.json"
    blocked.unlink()
    blocked.mkdir()

    summary = HistoryMerger(GitEngine(repo)).run("feature", "main")

    commit_report, tdd_report = summary.reports
    assert commit_report.ok and commit_report.written
    assert not tdd_report.ok
    assert tdd_report.error is not None and "failed to write" in tdd_report.error
    assert not summary.ok


def test_unexpected_error_is_captured_per_kind(
    repo: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    real_merge = orchestrator_module.merge_records

    def flaky_merge(kind, *args, **kwargs):  # type: ignore[no-untyped-def]
        if kind is COMMIT_HISTORY:
            raise RuntimeError("boom")
        return real_merge(kind, *args, **kwargs)

    monkeypatch.setattr(orchestrator_module, "merge_records", flaky_merge)

    with caplog.at_level(logging.ERROR, logger="history_merge"):
        summary = HistoryMerger(GitEngine(repo)).run("feature", "main")

    assert summary.reports[0].error == "boom"
    assert summary.reports[1].ok
    assert _load(repo / ".history" / "main" / "commit-history.json") == TARGET_COMMITS
    assert "Merging commits failed" in caplog.text


class _UnresolvableGit(GitEngine):
    def resolve_revision(self, branch: str) -> str:
        raise RevisionResolutionError(f"Could not resolve SHA for branch '{branch}'")


def test_unresolvable_revision_drops_placeholder_and_finishes(
    repo: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.ERROR, logger="history_merge"):
        summary = HistoryMerger(_UnresolvableGit(repo)).run("feature", "main")

    assert summary.ok
    commit_report, tdd_report = summary.reports
    assert commit_report.placeholder == "dropped"
    assert commit_report.new_count == 0
    assert tdd_report.placeholder == "dropped"
    assert tdd_report.new_count == 1
    shas = [record["sha"] for record in _load(repo / ".history" / "main" / "commit-history.json")]
    assert "HEAD" not in shas
    assert "Could not resolve SHA for branch 'feature'" in caplog.text


def test_unknown_source_branch_leaves_target_content(repo: Path) -> None:
    summary = HistoryMerger(GitEngine(repo)).run("gone", "main")

    assert summary.ok
    assert summary.reports[0].source_count == 0
    assert _load(repo / ".history" / "main" / "commit-history.json") == TARGET_COMMITS


def test_dry_run_writes_nothing_and_skips_reminder(
    repo: Path, caplog: pytest.LogCaptureFixture
) -> None:
    before = (repo / ".history" / "main" / "commit-history.json").read_bytes()

    with caplog.at_level(logging.INFO, logger="history_merge"):
        summary = HistoryMerger(GitEngine(repo), dry_run=True).run("feature", "main")

    assert (repo / ".history" / "main" / "commit-history.json").read_bytes() == before
    assert summary.dry_run
    assert summary.reports[0].new_count == 1
    assert not summary.reports[0].written
    assert "Dry run: would merge 1 new commits" in caplog.text
    assert "safely delete" not in caplog.text


def test_cleanup_reminder_is_logged(repo: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="history_merge"):
        HistoryMerger(GitEngine(repo)).run("feature", "main")

    assert "You can now safely delete the 'feature' branch." in caplog.text
    assert run_git(repo, "ls-tree", "-r", "--name-only", "feature").count(".history/") == 2


def test_custom_paths_config(repo: Path) -> None:
    run_git(repo, "checkout", "feature")
    _dump(repo / "logs" / "feature-commits.json", SOURCE_COMMITS[:1])
    run_git(repo, "add", "--all")
    run_git(repo, "commit", "-m", "custom layout")
    run_git(repo, "checkout", "main")

    merger = HistoryMerger(
        GitEngine(repo),
        paths_config={
            "history_dir": "logs",
            "commit_history_file": "{branch}-commits.json",
            "tdd_log_file": "{branch}-tdd.json",
        },
    )
    summary = merger.run("feature", "main")

    assert summary.ok
    assert _load(repo / "logs" / "main-commits.json") == SOURCE_COMMITS[:1]
    assert _load(repo / "logs" / "main-tdd.json") == []


def test_unusable_branch_name_raises_value_error(repo: Path) -> None:
    with pytest.raises(ValueError, match="does not map to a usable path"):
        HistoryMerger(GitEngine(repo)).run("feature", "..")


def test_branches_sharing_a_slug_are_rejected(repo: Path) -> None:
    with pytest.raises(ValueError, match="map to the same history files"):
        HistoryMerger(GitEngine(repo)).run("feature/x", "feature-x")

    assert not (repo / ".history" / "feature-x").exists()

"""
history-merge — unit tests for branch path mapping.
"""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from history_merge.paths import branch_slug, history_paths_for


def test_default_layout() -> None:
    paths = history_paths_for("main")

    assert paths.commit_history == PurePosixPath(".history/main/commit-history.json")
    assert paths.tdd_log == PurePosixPath(".history/main/tdd-log.json")


def test_mapping_is_deterministic_and_branch_specific() -> None:
    assert history_paths_for("feature/a") == history_paths_for("feature/a")
    assert history_paths_for("feature/a") != history_paths_for("feature/b")


@pytest.mark.parametrize(
    ("branch", "slug"),
    [
        ("main", "main"),
        ("feature/login", "feature-login"),
        ("user@host: x", "user-host-x"),
        ("release-1.2", "release-1.2"),
    ],
)
def test_branch_slug(branch: str, slug: str) -> None:
    assert branch_slug(branch) == slug


@pytest.mark.parametrize("branch", ["", "///", ".."])
def test_branch_slug_rejects_unusable_names(branch: str) -> None:
    with pytest.raises(ValueError, match="does not map to a usable path"):
        branch_slug(branch)


def test_custom_templates() -> None:
    paths = history_paths_for(
        "dev",
        {
            "history_dir": "data",
            "commit_history_file": "commits-{branch}.json",
            "tdd_log_file": "tdd-{branch}.json",
        },
    )

    assert paths.commit_history == PurePosixPath("data/commits-dev.json")
    assert paths.tdd_log == PurePosixPath("data/tdd-dev.json")

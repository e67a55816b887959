"""
history-merge — unit tests for CLI rendering.

Purpose
- Validate deterministic plain-text tables and color suppression.
"""

from __future__ import annotations

import pytest

from history_merge.ui.render import create_renderer


def test_table_aligns_columns(capsys: pytest.CaptureFixture[str]) -> None:
    renderer = create_renderer(no_color=True)

    renderer.table(("kind", "new"), [("commit_history", "3"), ("tdd_log", "12")])

    assert capsys.readouterr().out.splitlines() == [
        "  kind            new",
        "  --------------  ---",
        "  commit_history  3",
        "  tdd_log         12",
    ]


def test_empty_table_prints_nothing(capsys: pytest.CaptureFixture[str]) -> None:
    create_renderer(no_color=True).table(("kind",), [])

    assert capsys.readouterr().out == ""


def test_no_color_env_disables_paint(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("NO_COLOR", "1")
    renderer = create_renderer()

    renderer.ok("commit_history")
    renderer.fail("tdd_log: failed to write")

    assert capsys.readouterr().out.splitlines() == [
        "  OK  commit_history",
        "  FAIL  tdd_log: failed to write",
    ]

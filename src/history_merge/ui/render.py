"""Plain-text end-of-run summary for the history-merge CLI.

Color is used only on a terminal, and never when ``NO_COLOR`` is set or
``--no-color`` is passed.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

_STATUS_COLORS = {"OK": "32", "FAIL": "31"}


class CLIRenderer:
    """Writes headings, an aligned table, and per-kind status lines."""

    def __init__(self, *, no_color: bool = False, out: TextIO | None = None) -> None:
        self._out = out if out is not None else sys.stdout
        self._color = (
            not no_color
            and not os.environ.get("NO_COLOR")
            and getattr(self._out, "isatty", lambda: False)()
        )

    def section(self, title: str) -> None:
        self._write("")
        self._write(title)

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        """Left-aligned columns separated by two spaces; nothing is printed without rows."""
        if not rows:
            return
        cells = [list(headers), *[[str(value) for value in row] for row in rows]]
        widths = [max(len(line[col]) for line in cells) for col in range(len(headers))]
        rule = ["-" * width for width in widths]
        for line in (cells[0], rule, *cells[1:]):
            padded = (value.ljust(width) for value, width in zip(line, widths, strict=True))
            self._write("  " + "  ".join(padded).rstrip())

    def ok(self, label: str) -> None:
        self._status("OK", label)

    def fail(self, label: str) -> None:
        self._status("FAIL", label)

    def _status(self, word: str, label: str) -> None:
        if self._color:
            word = f"\033[{_STATUS_COLORS[word]}m{word}\033[0m"
        self._write(f"  {word}  {label}")

    def _write(self, line: str) -> None:
        print(line, file=self._out)


def create_renderer(*, no_color: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color)


__all__ = ["CLIRenderer", "create_renderer"]

"""Process entrypoint: runs the CLI and maps every outcome onto ``ExitCode``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Exit statuses returned by ``history-merge``."""

    SUCCESS = 0
    USAGE_ERROR = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 3


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run the CLI for ``python -m history_merge`` and the console script."""

    try:
        from history_merge.ui.cli import run_cli

        status: object = run_cli(argv)
    except SystemExit as exc:
        # argparse exits directly for --help.
        status = exc.code
    except Exception:  # noqa: BLE001 - last-resort crash report.
        print("history-merge: internal error", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        return ExitCode.INTERNAL_ERROR
    return _as_exit_code(status)


def _as_exit_code(status: object) -> int:
    if status is None:
        return ExitCode.SUCCESS
    try:
        return ExitCode(status)
    except ValueError:
        if isinstance(status, str):
            print(status, file=sys.stderr)
        return ExitCode.INTERNAL_ERROR


def console_script() -> None:
    """``[project.scripts]`` target."""

    sys.exit(cli_entrypoint())


__all__ = ["ExitCode", "cli_entrypoint", "console_script"]

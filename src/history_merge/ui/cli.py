"""Command-line interface for history-merge."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, NoReturn

from history_merge.config import ConfigLoadError, ConfigValidationError, load_config
from history_merge.observability.logging import setup_logging, shutdown_logging
from history_merge.orchestrator import HistoryMerger, MergeSummary
from history_merge.ui.render import CLIRenderer, create_renderer
from history_merge.vcs.git_engine import GitEngine

PROG: Final[str] = "history-merge"
USAGE: Final[str] = f"{PROG} <source-branch> <target-branch> [options]"

EXIT_SUCCESS: Final[int] = 0
EXIT_USAGE: Final[int] = 1
EXIT_CONFIG: Final[int] = 2


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = EXIT_USAGE

    def __str__(self) -> str:
        return self.message


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit code 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        raise CLIError(message, exit_code=EXIT_USAGE)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for ``history-merge``."""

    parser = _ArgumentParser(
        prog=PROG,
        usage=USAGE,
        description=(
            "Merge the commit history and TDD log recorded on a source branch into the\n"
            "target branch's working-tree copies, dropping duplicates and re-sorting\n"
            "chronologically."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("source_branch", help="Branch whose history records are merged in")
    parser.add_argument("target_branch", help="Branch whose working-tree history is updated")
    parser.add_argument(
        "--repo-root",
        default=".",
        help="Repository root directory (default: current working directory).",
    )
    parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: <repo-root>/history-merge.toml if present).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write JSON-lines logs to this file.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the merge and report counts without writing files.",
    )
    parser.add_argument("--json", action="store_true", help="Emit a JSON summary on stdout")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output.",
    )
    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, run the merge, and return the process exit code."""

    parser = build_parser()
    try:
        namespace = parser.parse_args(list(argv) if argv is not None else None)
        return _cmd_merge(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


# ---------------------------------------------------------------------------
# Command handler
# ---------------------------------------------------------------------------


def _cmd_merge(args: argparse.Namespace) -> int:
    repo_root = _repo_root(args)
    config = _load_effective_config(args, repo_root)

    setup_logging(config["observability"], verbose=bool(args.verbose))
    try:
        merger = HistoryMerger(
            GitEngine(repo_root),
            paths_config=config["paths"],
            dry_run=bool(args.dry_run),
        )
        try:
            summary = merger.run(args.source_branch, args.target_branch)
        except ValueError as exc:
            raise CLIError(str(exc), exit_code=EXIT_USAGE) from exc
    finally:
        shutdown_logging()

    if args.json:
        _emit_json(summary.as_dict())
    else:
        _render_summary(_get_renderer(args), summary)
    return EXIT_SUCCESS


def _render_summary(renderer: CLIRenderer, summary: MergeSummary) -> None:
    mode = " (dry run)" if summary.dry_run else ""
    renderer.section(f"Summary: {summary.source_branch} -> {summary.target_branch}{mode}")
    rows = [
        (
            report.kind,
            str(report.source_count),
            str(report.target_count),
            str(report.new_count),
            str(report.merged_count),
            report.placeholder,
        )
        for report in summary.reports
    ]
    renderer.table(("kind", "source", "target", "new", "merged", "HEAD"), rows)
    for report in summary.reports:
        if report.ok:
            renderer.ok(f"{report.kind}: {report.target_path}")
        else:
            renderer.fail(f"{report.kind}: {report.error}")


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=bool(args.no_color))


def _repo_root(args: argparse.Namespace) -> Path:
    candidate = Path(args.repo_root).expanduser().resolve()
    if not candidate.is_dir():
        raise CLIError(f"repo root is not a directory: {candidate}", exit_code=EXIT_CONFIG)
    return candidate


def _load_effective_config(args: argparse.Namespace, repo_root: Path) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    if args.log_file:
        overrides["observability.log_file"] = str(Path(args.log_file).expanduser().resolve())

    try:
        return load_config(args.config_path, base_dir=repo_root, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_CONFIG) from exc


__all__ = ["CLIError", "build_parser", "run_cli"]

"""Module entrypoint for ``python -m history_merge``."""

from __future__ import annotations

from history_merge.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())

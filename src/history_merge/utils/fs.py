"""Whole-file replacement for the persisted history logs."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path


def atomic_write(path: str | os.PathLike[str], text: str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``text`` so readers see either the old or the new file.

    The content goes to a sibling temp file that is fsynced and then renamed over
    ``path``. On any failure the temp file is removed and ``path`` is untouched.
    The parent directory must already exist.
    """

    target = Path(path)
    directory = target.parent.resolve(strict=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding=encoding,
        dir=directory,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    staged = Path(handle.name)
    try:
        with handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(staged, target)
    except BaseException:
        staged.unlink(missing_ok=True)
        raise
    _sync_directory(directory)


def _sync_directory(directory: Path) -> None:
    # Persist the rename itself; not every platform lets a directory be opened.
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    with contextlib.suppress(OSError):
        os.fsync(fd)
    os.close(fd)


__all__ = ["atomic_write"]

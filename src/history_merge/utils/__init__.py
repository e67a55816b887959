"""Shared utility helpers."""

from history_merge.utils.fs import atomic_write

__all__ = ["atomic_write"]

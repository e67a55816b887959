"""
history-merge — reconcile branch-local commit-history and TDD logs.

Purpose
- Package root. Keeps the public surface small and free of import-time side effects
  (no config loading, no logging setup).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]

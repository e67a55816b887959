"""Read-only git access: resolve a branch to its commit and read a file as of a branch.

Nothing here checks out, writes, or moves refs.
"""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

_SAFE_REVISION: Final = re.compile(r"[A-Za-z0-9._/@{}^~-]+")
# Substrings of git's (C locale) stderr when the branch exists but the path does not.
_PATH_MISSING_HINTS: Final = ("does not exist in", "exists on disk, but not in")


class GitEngineError(RuntimeError):
    """Base class for failures raised by ``GitEngine``."""


class SanitizationError(GitEngineError):
    """A branch name or path was rejected before reaching git."""


class RevisionResolutionError(GitEngineError):
    """A branch could not be resolved to a commit."""


class GitFileNotFoundError(GitEngineError):
    """The branch exists but does not contain the requested path."""

    def __init__(self, branch: str, path: str) -> None:
        super().__init__(f"File '{path}' not found on branch '{branch}'")
        self.branch = branch
        self.path = path


class GitCommandError(GitEngineError):
    """git exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        detail = stderr.strip()
        message = f"`git {' '.join(args)}` exited with {returncode}"
        super().__init__(f"{message}: {detail}" if detail else message)
        self.command = ("git", *args)
        self.returncode = returncode
        self.stderr = stderr


class GitEngine:
    """git CLI wrapper bound to one repository."""

    def __init__(
        self, repo_path: Path | str, *, env_overrides: Mapping[str, str] | None = None
    ) -> None:
        self.repo_path = Path(repo_path).resolve()
        self._env = {
            **os.environ,
            "GIT_TERMINAL_PROMPT": "0",
            "LC_ALL": "C",
            **(env_overrides or {}),
        }

    def resolve_revision(self, branch: str) -> str:
        """Return the full SHA of the commit ``branch`` points at."""
        ref = f"{self._checked_branch(branch)}^{{commit}}"
        try:
            completed = self._git("rev-parse", "--verify", "--quiet", ref)
        except OSError as exc:
            raise RevisionResolutionError(
                f"Could not run git to resolve '{branch}': {exc}"
            ) from exc
        sha = completed.stdout.strip()
        if completed.returncode != 0 or not sha:
            raise RevisionResolutionError(f"Could not resolve SHA for branch '{branch}'")
        return sha

    def show_file(self, branch: str, path: str | PurePosixPath) -> str:
        """Return ``path`` as committed on ``branch``; the working tree is not read."""
        rel = self.repo_relative_path(path)
        spec = f"{self._checked_branch(branch)}:{rel}"
        completed = self._git("show", spec)
        if completed.returncode == 0:
            return completed.stdout
        if any(hint in completed.stderr for hint in _PATH_MISSING_HINTS):
            raise GitFileNotFoundError(branch, rel)
        raise GitCommandError(("show", spec), completed.returncode, completed.stderr)

    def repo_relative_path(self, path: str | PurePosixPath | Path) -> str:
        """Express ``path`` the way ``git show <rev>:<path>`` expects it."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self.repo_path)
            except ValueError as exc:
                raise SanitizationError(f"path '{path}' is outside {self.repo_path}") from exc
        parts = [part for part in PurePosixPath(candidate.as_posix()).parts if part != "."]
        if not parts:
            raise SanitizationError("path cannot be empty.")
        if ".." in parts:
            raise SanitizationError(f"path '{path}' cannot contain '..'.")
        return "/".join(parts)

    def _checked_branch(self, branch: str) -> str:
        if not branch:
            raise SanitizationError("branch cannot be empty.")
        if branch.startswith("-"):
            raise SanitizationError(f"branch '{branch}' cannot start with '-'.")
        if not _SAFE_REVISION.fullmatch(branch):
            raise SanitizationError(f"branch {branch!r} contains unsupported characters.")
        return branch

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            env=self._env,
            capture_output=True,
            text=True,
            encoding="utf-8",
            check=False,
        )


__all__ = [
    "GitCommandError",
    "GitEngine",
    "GitEngineError",
    "GitFileNotFoundError",
    "RevisionResolutionError",
    "SanitizationError",
]

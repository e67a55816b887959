"""
history-merge — configuration schema and validation.

Purpose
- Built-in defaults, the schema version, and strict validation of the
  ``[meta]``, ``[paths]`` and ``[observability]`` tables.

Functional requirements
- Validation reports every problem as a (dotted field path, message) pair instead
  of stopping at the first one.
- History path templates must stay repository-relative and reference ``{branch}``.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Final, Literal, TypedDict

from history_merge.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_COMMIT_HISTORY_FILE,
    DEFAULT_HISTORY_DIR,
    DEFAULT_TDD_LOG_FILE,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
_LOG_FORMATS: Final[tuple[str, ...]] = ("text", "json")
_SECTIONS: Final[tuple[str, ...]] = ("meta", "paths", "observability")
_TEMPLATE_KEYS: Final[tuple[str, ...]] = ("commit_history_file", "tdd_log_file")


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    history_dir: str
    commit_history_file: str
    tdd_log_file: str


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_format: Literal["text", "json"]
    log_file: str


class HistoryMergeConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[HistoryMergeConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "paths": {
        "history_dir": DEFAULT_HISTORY_DIR,
        "commit_history_file": DEFAULT_COMMIT_HISTORY_FILE,
        "tdd_log_file": DEFAULT_TDD_LOG_FILE,
    },
    "observability": {"log_level": "INFO", "log_format": "text", "log_file": ""},
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Normalized config, or ``None`` together with the issues that prevented it."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {issue.path}: {issue.message}" for issue in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: rejected"))


def default_config() -> HistoryMergeConfig:
    """Fresh deep copy of ``DEFAULT_CONFIG``."""
    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade history-merge.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the history-merge tool"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Return ``base`` with ``overlay`` laid over it; nested tables merge key by key."""
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(dict(value) if isinstance(value, Mapping) else value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check every section and collect all issues in a stable order."""
    checker = _Checker()
    normalized = checker.run(config)
    if checker.issues or normalized is None:
        return ConfigValidationResult(config=None, issues=tuple(checker.issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Like ``validate_config`` but raises ``ConfigValidationError`` on any issue."""
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


class _Checker:
    def __init__(self) -> None:
        self.issues: list[ConfigValidationIssue] = []

    def report(self, path: str, message: str) -> None:
        self.issues.append(ConfigValidationIssue(path=path, message=message))

    def run(self, config: object) -> dict[str, Any] | None:
        root = self.table(config, "<root>")
        if root is None:
            return None
        self.fields(root, "", allowed=_SECTIONS, required=_SECTIONS)
        normalized: dict[str, Any] = {}
        for name, check in (
            ("meta", self.meta),
            ("paths", self.paths),
            ("observability", self.observability),
        ):
            if name in root:
                section = self.table(root[name], name)
                if section is not None:
                    normalized[name] = check(section)
        return normalized

    def meta(self, section: Mapping[str, object]) -> dict[str, Any]:
        self.fields(section, "meta", allowed=("schema_version",), required=())
        version = section.get("schema_version")
        if isinstance(version, bool) or not isinstance(version, int):
            self.report("meta.schema_version", f"expected integer, got {type(version).__name__}")
            return {"schema_version": None}
        if version != ConfigSchemaVersion:
            self.report("meta.schema_version", migration_guidance(version))
        return {"schema_version": version}

    def paths(self, section: Mapping[str, object]) -> dict[str, Any]:
        keys = ("commit_history_file", "history_dir", "tdd_log_file")
        self.fields(section, "paths", allowed=keys, required=keys)
        out = {key: self.relative(section[key], f"paths.{key}") for key in keys if key in section}
        history_dir = out.get("history_dir")
        if history_dir is None:
            return out
        for key in _TEMPLATE_KEYS:
            template = out.get(key)
            if template is None:
                continue
            combined = f"{history_dir}/{template}"
            if "{branch}" not in combined:
                self.report(f"paths.{key}", "history path must contain the {branch} placeholder")
                continue
            try:
                combined.format(branch="branch")
            except (KeyError, IndexError, ValueError):
                self.report(f"paths.{key}", "only the {branch} placeholder is supported")
        if not self.issues and out.get("commit_history_file") == out.get("tdd_log_file"):
            self.report("paths.tdd_log_file", "must differ from paths.commit_history_file")
        return out

    def observability(self, section: Mapping[str, object]) -> dict[str, Any]:
        self.fields(
            section,
            "observability",
            allowed=("log_file", "log_format", "log_level"),
            required=("log_format", "log_level"),
        )
        level = self.text(section.get("log_level"), "observability.log_level")
        fmt = self.text(section.get("log_format"), "observability.log_format")
        out: dict[str, Any] = {
            "log_level": self.choice(level and level.upper(), "log_level", _LOG_LEVELS),
            "log_format": self.choice(fmt, "log_format", _LOG_FORMATS),
            "log_file": "",
        }
        log_file = section.get("log_file", "")
        if not isinstance(log_file, str):
            self.report("observability.log_file", f"expected string, got {type(log_file).__name__}")
        elif "\x00" in log_file:
            self.report("observability.log_file", "must not contain NUL bytes")
        else:
            out["log_file"] = log_file.strip()
        return out

    def table(self, value: object, path: str) -> dict[str, object] | None:
        if not isinstance(value, Mapping):
            self.report(path, f"expected object, got {type(value).__name__}")
            return None
        for key in value:
            if not isinstance(key, str):
                self.report(path, f"object key must be string, got {type(key).__name__}")
        return {key: item for key, item in value.items() if isinstance(key, str)}

    def fields(
        self,
        section: Mapping[str, object],
        prefix: str,
        *,
        allowed: Sequence[str],
        required: Sequence[str],
    ) -> None:
        for key in sorted(set(section) - set(allowed)):
            self.report(f"{prefix}.{key}" if prefix else key, "unknown field")
        for key in required:
            if key not in section:
                self.report(f"{prefix}.{key}" if prefix else key, "missing required field")

    def text(self, value: object, path: str) -> str | None:
        if not isinstance(value, str):
            self.report(path, f"expected string, got {type(value).__name__}")
            return None
        if not value.strip():
            self.report(path, "must not be empty")
            return None
        return value.strip()

    def relative(self, value: object, path: str) -> str | None:
        raw = self.text(value, path)
        if raw is None:
            return None
        if "\x00" in raw:
            self.report(path, "must not contain NUL bytes")
            return None
        candidate = PurePosixPath(raw.replace("\\", "/"))
        if candidate.is_absolute():
            self.report(path, "must be a repository-relative path")
        elif ".." in candidate.parts:
            self.report(path, "path traversal ('..') is forbidden")
        else:
            return candidate.as_posix()
        return None

    def choice(self, value: str | None, key: str, allowed: tuple[str, ...]) -> str | None:
        if value is None:
            return None
        if value not in allowed:
            self.report(
                f"observability.{key}",
                f"invalid value {value!r}; expected one of: {', '.join(sorted(allowed))}",
            )
            return None
        return value


__all__ = [
    "DEFAULT_CONFIG",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "HistoryMergeConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]

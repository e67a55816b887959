"""
history-merge — runtime config loader.

Purpose
- Build the effective configuration from built-in defaults, ``history-merge.toml``,
  ``HISTORY_MERGE_<SECTION>_<KEY>`` environment variables, and CLI overrides, in
  increasing order of precedence.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from history_merge.config.schema import assert_valid_config, default_config, merge_config

DEFAULT_CONFIG_FILE: Final[str] = "history-merge.toml"
ENV_PREFIX: Final[str] = "HISTORY_MERGE_"


class ConfigLoadError(ValueError):
    """Raised when the config file or an override cannot be read."""


def load_config(
    config_path: str | Path | None = None,
    *,
    base_dir: str | Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated effective config.

    ``cli_overrides`` maps dotted keys (``"observability.log_file"``) to values.
    Without ``config_path`` the file is looked up in ``base_dir`` and may be absent;
    an explicit path must exist.
    """

    if config_path is None:
        path = Path(base_dir if base_dir is not None else Path.cwd()) / DEFAULT_CONFIG_FILE
        file_payload = _read_toml(path.resolve()) if path.is_file() else {}
    else:
        path = Path(config_path).expanduser()
        if not path.is_file():
            raise ConfigLoadError(f"config file not found: {path}")
        file_payload = _read_toml(path.resolve())

    layered = assert_valid_config(merge_config(default_config(), file_payload))
    layered = merge_config(layered, _env_layer(layered, os.environ if environ is None else environ))
    layered = merge_config(layered, _cli_layer(cli_overrides or {}))
    config = assert_valid_config(layered)

    log_file = config["observability"]["log_file"]
    if log_file:
        config["observability"]["log_file"] = _anchor(log_file, path.resolve().parent)
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(config: Mapping[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Pick up ``HISTORY_MERGE_<SECTION>_<KEY>`` for every known key."""

    layer: dict[str, Any] = {}
    for section, values in config.items():
        for key, current in values.items():
            name = f"{ENV_PREFIX}{section}_{key}".upper()
            if name not in environ:
                continue
            raw = environ[name].strip()
            if isinstance(current, int):
                try:
                    value: object = int(raw)
                except ValueError as exc:
                    raise ConfigLoadError(f"{name} must be an integer, got {raw!r}") from exc
            else:
                value = raw
            layer.setdefault(section, {})[key] = value
    return layer


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for dotted, value in overrides.items():
        section, _, key = dotted.partition(".")
        if not section or not key:
            raise ConfigLoadError(f"invalid override key {dotted!r}; expected 'section.key'")
        layer.setdefault(section, {})[key] = value
    return layer


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = ["DEFAULT_CONFIG_FILE", "ENV_PREFIX", "ConfigLoadError", "load_config"]

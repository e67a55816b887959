"""
history-merge — logging setup.

Purpose
- Attach a console handler (plain text or JSON lines) and an optional JSON-lines
  file handler to the ``history_merge`` logger for one CLI run.
- Stamp every JSON line with the correlation fields bound by ``correlation_scope``.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import Final, TextIO

ROOT_LOGGER_NAME: Final[str] = "history_merge"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_BUILTIN_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_correlation: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "history_merge_correlation", default={}
)

_active: LoggingHandle | None = None


class _JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_correlation.get(),
        }
        extras = {
            key: value
            for key, value in vars(record).items()
            if key not in _BUILTIN_RECORD_ATTRS and not key.startswith("_")
        }
        if extras:
            event["fields"] = extras
        if record.exc_info:
            event["exception"] = self.formatException(record.exc_info)
        return json.dumps(event, sort_keys=True, ensure_ascii=False, default=_json_fallback)


class _ConsoleFormatter(logging.Formatter):
    """Progress lines print as-is; warnings and errors get a level prefix."""

    def format(self, record: logging.LogRecord) -> str:
        line = record.getMessage()
        if record.levelno >= logging.WARNING:
            line = f"{record.levelname.lower()}: {line}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LoggingHandle:
    """Handlers installed by ``setup_logging`` plus the logger state they replaced."""

    def __init__(self, logger: logging.Logger, handlers: list[logging.Handler]) -> None:
        self.logger = logger
        self._handlers = handlers
        self._saved_level = logger.level
        self._saved_propagate = logger.propagate
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        for handler in self._handlers:
            self.logger.removeHandler(handler)
            handler.close()
        self.logger.setLevel(self._saved_level)
        self.logger.propagate = self._saved_propagate
        self.closed = True


def setup_logging(
    observability: Mapping[str, object] | None = None,
    *,
    verbose: bool = False,
    logger_name: str = ROOT_LOGGER_NAME,
    stream: TextIO | None = None,
) -> LoggingHandle:
    """Install handlers described by an ``[observability]`` table.

    ``verbose`` forces DEBUG. Any handle from a previous call is closed first.
    """

    global _active
    shutdown_logging()

    cfg = dict(observability or {})
    level = logging.DEBUG if verbose else _level_from(cfg.get("log_level", "INFO"))

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setFormatter(
        _JsonLineFormatter() if cfg.get("log_format") == "json" else _ConsoleFormatter()
    )
    handlers: list[logging.Handler] = [console]

    log_file = str(cfg.get("log_file") or "").strip()
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(_JsonLineFormatter())
        handlers.append(file_handler)

    logger = logging.getLogger(logger_name)
    handle = LoggingHandle(logger, handlers)
    logger.setLevel(level)
    logger.propagate = False
    for handler in handlers:
        logger.addHandler(handler)

    _active = handle
    return handle


def shutdown_logging() -> None:
    """Close the handle installed by the last ``setup_logging`` call, if any."""

    global _active
    if _active is not None:
        _active.close()
        _active = None


@contextmanager
def correlation_scope(**fields: str) -> Iterator[None]:
    """Bind ``fields`` onto every JSON log line emitted inside the block."""

    for key, value in fields.items():
        if not value.strip():
            raise ValueError(f"correlation value for {key!r} must not be empty")
    token = _correlation.set({**_correlation.get(), **fields})
    try:
        yield
    finally:
        _correlation.reset(token)


def current_correlation() -> dict[str, str]:
    return dict(_correlation.get())


def _level_from(value: object) -> int:
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return level


def _json_fallback(value: object) -> str:
    if isinstance(value, PurePath):
        return value.as_posix()
    return repr(value)


__all__ = [
    "ROOT_LOGGER_NAME",
    "LoggingHandle",
    "correlation_scope",
    "current_correlation",
    "setup_logging",
    "shutdown_logging",
]

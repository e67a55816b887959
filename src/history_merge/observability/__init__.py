"""Console and JSON-lines logging for history-merge runs."""

from history_merge.observability.logging import (
    LoggingHandle,
    correlation_scope,
    setup_logging,
    shutdown_logging,
)

__all__ = ["LoggingHandle", "correlation_scope", "setup_logging", "shutdown_logging"]

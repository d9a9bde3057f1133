"""
Observability module: structured logging with session/trigger correlation.
"""

from sheetsync.observability.logging import (
    StructuredLogger,
    LogLevel,
    JsonFormatter,
    log_context,
    current_log_context,
    setup_logging,
)

__all__ = [
    "StructuredLogger",
    "LogLevel",
    "JsonFormatter",
    "log_context",
    "current_log_context",
    "setup_logging",
]

"""Observability helpers for recompress."""

from recompress.observability.logging import (
    ConsoleFormatter,
    JSONFormatter,
    LogHandler,
    LogLevel,
    LogRecord,
    StderrHandler,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConsoleFormatter",
    "JSONFormatter",
    "LogHandler",
    "LogLevel",
    "LogRecord",
    "StderrHandler",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]

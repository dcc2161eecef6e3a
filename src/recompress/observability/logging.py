"""Structured diagnostics for recompress.

Standard output carries the transcoded byte stream, so every diagnostic
line goes to standard error. Records carry key-value fields that render
either as ``key=value`` pairs for people or as one JSON object per line
for machines.

Usage:
    >>> from recompress.observability.logging import configure_logging, get_logger
    >>> configure_logging(level="debug", format="json")
    >>> log = get_logger(__name__)
    >>> log.info("Detected input format", input_format="gzip")
"""

from __future__ import annotations

import json
import sys
import threading
import traceback
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, TextIO


# =============================================================================
# Levels and Records
# =============================================================================


class LogLevel(IntEnum):
    """Severity of a diagnostic."""

    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_string(cls, name: str) -> "LogLevel":
        """Parse a level name. Unknown names map to INFO."""
        aliases = {"WARN": "WARNING", "FATAL": "CRITICAL"}
        key = name.strip().upper()
        return cls.__members__.get(aliases.get(key, key), cls.INFO)


@dataclass
class LogRecord:
    """One diagnostic event.

    Attributes:
        timestamp: Creation time in UTC.
        level: Severity.
        message: Event description.
        logger_name: Emitting module.
        fields: Key-value context (formats, byte counts, timings).
        exception: Error attached to the event, if any.
    """

    timestamp: datetime
    level: LogLevel
    message: str
    logger_name: str
    fields: dict[str, Any] = field(default_factory=dict)
    exception: BaseException | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name.lower(),
            "logger": self.logger_name,
            "message": self.message,
        }
        payload.update(self.fields)
        if self.exception is not None:
            payload["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
            }
        return payload


# =============================================================================
# Formatters
# =============================================================================


class LogFormatter(ABC):
    """Turns a record into a single output line."""

    @abstractmethod
    def format(self, record: LogRecord) -> str:
        pass


class JSONFormatter(LogFormatter):
    """Compact JSON, one object per line.

    Example output:
        {"timestamp":"2024-01-15T10:30:00+00:00","level":"info","logger":"recompress.engine",...}
    """

    def __init__(self, *, sort_keys: bool = False) -> None:
        self._sort_keys = sort_keys

    def format(self, record: LogRecord) -> str:
        return json.dumps(
            record.to_dict(),
            default=str,
            separators=(",", ":"),
            sort_keys=self._sort_keys,
        )


class ConsoleFormatter(LogFormatter):
    """Readable single-line format for terminals.

    Example output:
        INFO  [recompress.engine] Detected input format input_format=gzip
    """

    _PALETTE = {
        LogLevel.TRACE: "90",
        LogLevel.DEBUG: "36",
        LogLevel.INFO: "32",
        LogLevel.WARNING: "33",
        LogLevel.ERROR: "31",
        LogLevel.CRITICAL: "35",
    }

    def __init__(
        self,
        *,
        color: bool = False,
        show_timestamp: bool = False,
        timestamp_format: str = "%H:%M:%S",
    ) -> None:
        """Create a console formatter.

        Args:
            color: Colour the level name with ANSI escapes.
            show_timestamp: Prefix each line with the record time.
            timestamp_format: ``strftime`` pattern for the prefix.
        """
        self._color = color
        self._show_timestamp = show_timestamp
        self._timestamp_format = timestamp_format

    def _level_label(self, level: LogLevel) -> str:
        label = f"{level.name:<5}"
        if not self._color:
            return label
        return f"\033[{self._PALETTE.get(level, '0')}m{label}\033[0m"

    def format(self, record: LogRecord) -> str:
        head = []
        if self._show_timestamp:
            head.append(record.timestamp.strftime(self._timestamp_format))
        head.append(self._level_label(record.level))
        head.append(f"[{record.logger_name}] {record.message}")
        head.extend(f"{key}={value}" for key, value in record.fields.items())
        line = " ".join(head)

        error = record.exception
        if error is None:
            return line
        if record.level > LogLevel.DEBUG:
            return f"{line} error={error}"
        trace = traceback.format_exception(type(error), error, error.__traceback__)
        return line + "\n" + "".join(trace)


# =============================================================================
# Handlers
# =============================================================================


class LogHandler(ABC):
    """Destination for records, serialised by a per-handler lock."""

    def __init__(
        self,
        formatter: LogFormatter | None = None,
        level: LogLevel = LogLevel.TRACE,
    ) -> None:
        self._formatter = formatter or ConsoleFormatter()
        self._threshold = level
        self._lock = threading.Lock()

    @property
    def formatter(self) -> LogFormatter:
        return self._formatter

    @abstractmethod
    def emit(self, record: LogRecord) -> None:
        """Write one record."""

    def handle(self, record: LogRecord) -> None:
        if record.level < self._threshold:
            return
        with self._lock:
            self.emit(record)


class StderrHandler(LogHandler):
    """Writes records to the error channel.

    With no explicit stream, ``sys.stderr`` is resolved on every write so
    that later redirection (test capture, CLI runners) is respected.
    """

    def __init__(self, *, stream: TextIO | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._stream = stream

    def emit(self, record: LogRecord) -> None:
        target = self._stream if self._stream is not None else sys.stderr
        target.write(f"{self._formatter.format(record)}\n")
        target.flush()


# =============================================================================
# Logger
# =============================================================================


class StructuredLogger:
    """Logger attaching key-value fields to every record.

    Example:
        >>> log = StructuredLogger("recompress.engine")
        >>> log.add_handler(StderrHandler(formatter=JSONFormatter()))
        >>> log.bind(output_format="zstd").info("Transcoding complete", bytes_out=1024)
    """

    def __init__(
        self,
        name: str,
        *,
        level: LogLevel = LogLevel.INFO,
        handlers: list[LogHandler] | None = None,
    ) -> None:
        self._name = name
        self._level = level
        self._handlers = [] if handlers is None else handlers
        self._context: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def level(self) -> LogLevel:
        return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        self._level = value

    @property
    def handlers(self) -> list[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> None:
        self._handlers.append(handler)

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Derive a logger that adds ``fields`` to every record.

        The derived logger writes through the same handler list.
        """
        child = StructuredLogger(self._name, level=self._level, handlers=self._handlers)
        child._context = {**self._context, **fields}
        return child

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._level

    def log(
        self,
        level: LogLevel,
        message: str,
        /,
        *,
        exception: BaseException | None = None,
        **fields: Any,
    ) -> None:
        if not self.is_enabled_for(level):
            return
        record = LogRecord(
            timestamp=datetime.now(timezone.utc),
            level=level,
            message=message,
            logger_name=self._name,
            fields={**self._context, **fields},
            exception=exception,
        )
        for handler in self._handlers:
            try:
                handler.handle(record)
            except Exception:
                pass  # handler errors never reach the caller

    def trace(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.TRACE, message, **fields)

    def debug(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, **fields)

    def info(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, **fields)

    def warning(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.WARNING, message, **fields)

    def error(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, **fields)

    def critical(self, message: str, /, **fields: Any) -> None:
        self.log(LogLevel.CRITICAL, message, **fields)

    def exception(
        self, message: str, exc: BaseException | None = None, /, **fields: Any
    ) -> None:
        """Log at ERROR with ``exc``, or the exception currently being handled."""
        self.log(LogLevel.ERROR, message, exception=exc or sys.exc_info()[1], **fields)


# =============================================================================
# Registry
# =============================================================================

_registry: dict[str, StructuredLogger] = {}
_handlers: list[LogHandler] = []
_level = LogLevel.INFO
_registry_lock = threading.Lock()


def configure_logging(
    *,
    level: LogLevel | str = LogLevel.INFO,
    format: str = "console",
    stream: TextIO | None = None,
    handlers: list[LogHandler] | None = None,
) -> None:
    """Set the level and output of every recompress logger.

    Modules create their loggers at import time, so loggers that already
    exist are switched over as well.

    Args:
        level: Minimum severity to emit.
        format: ``"console"`` or ``"json"``.
        stream: Text stream to write to; defaults to the current stderr.
        handlers: Explicit handlers, replacing ``format`` and ``stream``.
    """
    global _handlers, _level

    if isinstance(level, str):
        level = LogLevel.from_string(level)
    if handlers is None:
        if format == "json":
            formatter: LogFormatter = JSONFormatter()
        else:
            formatter = ConsoleFormatter(color=_isatty(stream or sys.stderr))
        handlers = [StderrHandler(stream=stream, formatter=formatter)]

    with _registry_lock:
        _level = level
        _handlers = list(handlers)
        for logger in _registry.values():
            logger.level = level
            logger.handlers[:] = _handlers


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def get_logger(name: str) -> StructuredLogger:
    """Return the logger registered under ``name``, creating it on first use."""
    with _registry_lock:
        logger = _registry.get(name)
        if logger is None:
            logger = _registry[name] = StructuredLogger(
                name, level=_level, handlers=list(_handlers)
            )
        return logger


configure_logging()

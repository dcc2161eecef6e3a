"""CLI error handling utilities.

This module maps failures to exit codes and single-line diagnostics on the
error channel. Stalls detected by the watchdog never reach this module: the
watchdog terminates the process directly.
"""

from __future__ import annotations

import functools
from enum import Enum
from typing import Any, Callable, TypeVar

import typer

from recompress.codecs.base import CodecConfigError, CodecError, UnsupportedFormatError
from recompress.observability.logging import LogLevel, get_logger
from recompress.watchdog import EXIT_STALLED

logger = get_logger(__name__)


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(Enum):
    """Process exit codes."""

    SUCCESS = 0
    TRANSCODE_FAILED = 1
    USAGE_ERROR = 2
    ENVIRONMENT_ERROR = 3
    STALLED = EXIT_STALLED


# =============================================================================
# Exception Classes
# =============================================================================


class CLIError(Exception):
    """Base exception for CLI errors.

    Attributes:
        message: Error message
        code: Error code
        hint: Helpful hint for resolution
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TRANSCODE_FAILED,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint

    def __str__(self) -> str:
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)


class InteractiveInputError(CLIError):
    """Standard input is a terminal instead of a pipe or file."""

    def __init__(self) -> None:
        super().__init__(
            message="input is a terminal, please pipe data via stdin",
            code=ErrorCode.ENVIRONMENT_ERROR,
            hint="Try: cat file.gz | recompress transcode -o zstd > file.zst",
        )


# =============================================================================
# Error Handler
# =============================================================================


def exit_code_for(error: Exception) -> ErrorCode:
    """Map an exception to the exit code reported for it."""
    if isinstance(error, CLIError):
        return error.code
    if isinstance(error, UnsupportedFormatError):
        return ErrorCode.ENVIRONMENT_ERROR
    if isinstance(error, CodecConfigError):
        return ErrorCode.USAGE_ERROR
    return ErrorCode.TRANSCODE_FAILED


def describe_error(error: Exception) -> str:
    """Single-line description naming the failing stage where known."""
    stage = getattr(error, "stage", None)
    if isinstance(error, CodecError) and stage:
        return f"{stage} stage failed: {error}"
    if isinstance(error, CLIError):
        return error.message
    return str(error) or type(error).__name__


F = TypeVar("F", bound=Callable[..., Any])


def error_boundary(func: F) -> F:
    """Catch exceptions raised by a command and exit with the mapped code.

    Unexpected exceptions are reported the same way, on one line, and exit
    with the transcode failure code. Their traceback is logged at DEBUG.

    Args:
        func: Function to wrap

    Returns:
        Wrapped function
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except (CLIError, CodecError, OSError) as e:
            typer.echo(f"Error: {describe_error(e)}", err=True)
            hint = getattr(e, "hint", None)
            if hint:
                typer.echo(f"Hint: {hint}", err=True)
            logger.debug("Command failed", error_type=type(e).__name__)
            raise typer.Exit(exit_code_for(e).value)
        except Exception as e:
            logger.log(LogLevel.DEBUG, "Unexpected error", exception=e)
            typer.echo(f"Error: {describe_error(e)}", err=True)
            raise typer.Exit(ErrorCode.TRANSCODE_FAILED.value)

    return wrapper  # type: ignore

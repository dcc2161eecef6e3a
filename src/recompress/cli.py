"""Command-line interface for recompress."""

import sys
from typing import Annotated, Optional

import typer

from recompress.codecs import (
    CompressionFormat,
    CompressionLevel,
    DEFAULT_CHUNK_SIZE,
    is_format_available,
)
from recompress.config import DEFAULT_HINT, TranscodeConfig
from recompress.engine import transcode
from recompress.errors import CLIError, ErrorCode, InteractiveInputError, error_boundary
from recompress.observability.logging import LogLevel, configure_logging, get_logger
from recompress.watchdog import DEFAULT_STALL_TIMEOUT, StallWatchdog

logger = get_logger(__name__)

app = typer.Typer(
    name="recompress",
    help="Detect the compression format of stdin and re-encode it to stdout",
    add_completion=False,
)

LOG_FORMATS = ("console", "json")


def _parse_level(value: str) -> CompressionLevel | int:
    """Parse a level preset name or a numeric level."""
    value = value.strip()
    if value.lstrip("-").isdigit():
        return int(value)
    return CompressionLevel.from_string(value)


def _setup_logging(quiet: bool, verbose: bool, log_format: str) -> None:
    if log_format not in LOG_FORMATS:
        raise CLIError(
            f"Unknown log format '{log_format}'",
            code=ErrorCode.USAGE_ERROR,
            hint=f"Use one of: {', '.join(LOG_FORMATS)}",
        )
    if verbose:
        level = LogLevel.DEBUG
    elif quiet:
        level = LogLevel.WARNING
    else:
        level = LogLevel.INFO
    configure_logging(level=level, format=log_format)


def _run(config: TranscodeConfig) -> None:
    """Transcode stdin to stdout with the given configuration."""
    if sys.stdin.isatty():
        raise InteractiveInputError()

    watchdog = None
    if config.stall_timeout is not None:
        watchdog = StallWatchdog(config.stall_timeout)

    logger.debug("Starting transcode", config=config.to_dict())
    transcode(sys.stdin.buffer, sys.stdout.buffer, config, watchdog=watchdog)


# =============================================================================
# Commands
# =============================================================================


@app.command(name="transcode")
@error_boundary
def transcode_cmd(
    hint: Annotated[
        str,
        typer.Argument(help="Input format hint, used when no signature matches (e.g. brotli)"),
    ] = DEFAULT_HINT,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress informational output"),
    ] = False,
    output_type: Annotated[
        CompressionFormat,
        typer.Option("--output-type", "-o", help="Output format", case_sensitive=False),
    ] = CompressionFormat.NONE,
    level: Annotated[
        str,
        typer.Option(
            "--level",
            "-l",
            help="Compression level preset (fastest, fast, balanced, high, maximum) or number",
        ),
    ] = "balanced",
    chunk_size: Annotated[
        int,
        typer.Option("--chunk-size", help="Copy buffer size in bytes", min=1),
    ] = DEFAULT_CHUNK_SIZE,
    stall_timeout: Annotated[
        Optional[float],
        typer.Option(
            "--stall-timeout",
            help="Abort if no input arrives within this many seconds",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    log_format: Annotated[
        str,
        typer.Option("--log-format", help="Diagnostics format (console, json)"),
    ] = "console",
) -> None:
    """Transcode a compressed stream from stdin to stdout."""
    _setup_logging(quiet, verbose, log_format)
    config = TranscodeConfig(
        output_type=output_type,
        hint=hint,
        quiet=quiet,
        level=_parse_level(level),
        chunk_size=chunk_size,
        stall_timeout=stall_timeout,
    )
    _run(config)


@app.command(name="decompress")
@error_boundary
def decompress_cmd(
    hint: Annotated[
        str,
        typer.Argument(help="Input format hint, used when no signature matches (e.g. brotli)"),
    ] = DEFAULT_HINT,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress informational output"),
    ] = False,
    stall_timeout: Annotated[
        float,
        typer.Option(
            "--stall-timeout",
            help="Abort if no input arrives within this many seconds",
        ),
    ] = DEFAULT_STALL_TIMEOUT,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    log_format: Annotated[
        str,
        typer.Option("--log-format", help="Diagnostics format (console, json)"),
    ] = "console",
) -> None:
    """Decompress stdin to stdout, aborting if no input arrives."""
    _setup_logging(quiet, verbose, log_format)
    config = TranscodeConfig(
        output_type=CompressionFormat.NONE,
        hint=hint,
        quiet=quiet,
        stall_timeout=stall_timeout,
    )
    _run(config)


@app.command(name="formats")
def formats_cmd() -> None:
    """List supported formats and whether their codec library is installed."""
    for fmt in CompressionFormat:
        status = "available" if is_format_available(fmt) else "missing library"
        typer.echo(f"{fmt.value:<8} {fmt.extension or '-':<9} {status}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

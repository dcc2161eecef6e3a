"""Run configuration for the transcoder.

``TranscodeConfig`` is built once at the entry boundary (the CLI, or the
caller when used as a library) and passed by reference to every component
that needs it. Nothing below the entry point reads process state directly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from recompress.codecs.base import (
    DEFAULT_CHUNK_SIZE,
    CodecConfigError,
    CompressionFormat,
    CompressionLevel,
    UnsupportedFormatError,
)

DEFAULT_HINT = "unknown"


class ConfigError(CodecConfigError):
    """Invalid transcoder configuration."""

    pass


def normalize_hint(hint: str | None) -> str:
    """Normalize a format hint for comparison.

    Hints are matched case-insensitively, ignoring surrounding whitespace,
    so ``"Brotli"`` and ``" brotli "`` both select brotli.
    """
    if not hint:
        return DEFAULT_HINT
    return hint.strip().lower() or DEFAULT_HINT


def hint_format(hint: str | None) -> CompressionFormat | None:
    """Get the format a hint names, or None for unknown/unrecognized hints."""
    try:
        return CompressionFormat.from_name(normalize_hint(hint))
    except UnsupportedFormatError:
        return None


def is_recognized_hint(hint: str | None) -> bool:
    """Check whether a hint is ``unknown`` or names a known format."""
    return normalize_hint(hint) == DEFAULT_HINT or hint_format(hint) is not None


@dataclass(frozen=True)
class TranscodeConfig:
    """Configuration for one transcoding run.

    Attributes:
        output_type: Format to re-encode into (``none`` passes bytes through).
        hint: Input format name used only when no signature matches.
        quiet: Suppress informational diagnostics.
        level: Compression level preset or numeric level for the encoder.
        chunk_size: Size of the reusable copy buffer and of source reads.
        stall_timeout: Seconds to wait for the first input bytes before
            aborting the process (None disables the watchdog).
    """

    output_type: CompressionFormat = CompressionFormat.NONE
    hint: str = DEFAULT_HINT
    quiet: bool = False
    level: CompressionLevel | int = CompressionLevel.BALANCED
    chunk_size: int = DEFAULT_CHUNK_SIZE
    stall_timeout: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.output_type, CompressionFormat):
            object.__setattr__(
                self, "output_type", CompressionFormat.from_name(str(self.output_type))
            )
        self.validate()

    def validate(self) -> None:
        """Validate configuration."""
        if self.chunk_size <= 0:
            raise ConfigError("chunk_size must be positive")
        if self.stall_timeout is not None and self.stall_timeout <= 0:
            raise ConfigError("stall_timeout must be positive")
        if not isinstance(self.level, (CompressionLevel, int)) or isinstance(self.level, bool):
            raise ConfigError(f"Invalid compression level: {self.level!r}")

    @property
    def normalized_hint(self) -> str:
        return normalize_hint(self.hint)

    def with_overrides(self, **changes: Any) -> "TranscodeConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["output_type"] = self.output_type.value
        data["level"] = self.level.name.lower() if isinstance(self.level, CompressionLevel) else self.level
        return data

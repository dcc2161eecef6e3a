"""Base classes, protocols, and types for the codec layer.

This module defines the abstractions every codec variant follows. The
transcoding engine only ever talks to the ``Decoder`` and ``Encoder``
protocols, so any decoder can feed any encoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Protocol, runtime_checkable


# =============================================================================
# Exceptions
# =============================================================================


class CodecError(Exception):
    """Base exception for codec errors."""

    def __init__(self, message: str, format: str | None = None) -> None:
        self.format = format
        super().__init__(f"[{format}] {message}" if format else message)


class DecodingError(CodecError):
    """Malformed, truncated or otherwise undecodable input."""

    stage = "decode"


class EncodingError(CodecError):
    """Error while compressing or writing to the output sink."""

    stage = "encode"


class EncoderStateError(CodecError):
    """Encoder used after it was finalized or aborted."""

    pass


class UnsupportedFormatError(CodecError):
    """Requested format is unknown or its codec library is not installed."""

    def __init__(self, format: str, available: list[str] | None = None) -> None:
        self.available = available or []
        msg = f"Format '{format}' is not supported"
        if self.available:
            msg += f". Available: {', '.join(self.available)}"
        super().__init__(msg, format)


class CodecConfigError(CodecError):
    """Invalid codec configuration."""

    pass


# =============================================================================
# Enums
# =============================================================================


class CompressionFormat(str, Enum):
    """Compressed stream formats understood by the transcoder."""

    NONE = "none"
    GZIP = "gzip"
    ZLIB = "zlib"
    DEFLATE = "deflate"
    XZ = "xz"
    ZSTD = "zstd"
    BROTLI = "brotli"
    LZMA = "lzma"

    @classmethod
    def from_name(cls, name: str) -> "CompressionFormat":
        """Parse a format name, ignoring case and surrounding whitespace.

        Raises:
            UnsupportedFormatError: If the name is not a known format.
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise UnsupportedFormatError(name, [f.value for f in cls]) from None

    @property
    def extension(self) -> str:
        """Get the conventional file extension for this format."""
        ext_map = {
            self.NONE: "",
            self.GZIP: ".gz",
            self.ZLIB: ".zz",
            self.DEFLATE: ".deflate",
            self.XZ: ".xz",
            self.ZSTD: ".zst",
            self.BROTLI: ".br",
            self.LZMA: ".lzma",
        }
        return ext_map.get(self, "")


class CompressionLevel(Enum):
    """Compression level presets."""

    FASTEST = auto()
    FAST = auto()
    BALANCED = auto()
    HIGH = auto()
    MAXIMUM = auto()

    @classmethod
    def from_string(cls, value: str) -> "CompressionLevel":
        """Convert a preset name to a CompressionLevel."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(level.name.lower() for level in cls)
            raise CodecConfigError(
                f"Unknown compression level '{value}'. Expected one of: {names}"
            ) from None

    def get_level(self, format: CompressionFormat) -> int:
        """Get numeric level for a specific format.

        Different formats have different level ranges:
        - gzip, zlib, deflate: 1-9
        - zstd: 1-19 (levels above 19 need ultra mode)
        - brotli: quality 0-11
        - xz, lzma: preset 0-9
        """
        deflate_levels = {
            self.FASTEST: 1,
            self.FAST: 3,
            self.BALANCED: 6,
            self.HIGH: 8,
            self.MAXIMUM: 9,
        }
        lzma_levels = {
            self.FASTEST: 0,
            self.FAST: 3,
            self.BALANCED: 6,
            self.HIGH: 8,
            self.MAXIMUM: 9,
        }
        level_map = {
            CompressionFormat.GZIP: deflate_levels,
            CompressionFormat.ZLIB: deflate_levels,
            CompressionFormat.DEFLATE: deflate_levels,
            CompressionFormat.ZSTD: {
                self.FASTEST: 1,
                self.FAST: 3,
                self.BALANCED: 6,
                self.HIGH: 12,
                self.MAXIMUM: 19,
            },
            CompressionFormat.BROTLI: {
                self.FASTEST: 0,
                self.FAST: 4,
                self.BALANCED: 11,
                self.HIGH: 11,
                self.MAXIMUM: 11,
            },
            CompressionFormat.XZ: lzma_levels,
            CompressionFormat.LZMA: lzma_levels,
        }
        return level_map.get(format, {}).get(self, 6)


# =============================================================================
# Configuration
# =============================================================================


DEFAULT_CHUNK_SIZE = 64 * 1024  # 64KB

_LEVEL_RANGES: dict[CompressionFormat, tuple[int, int]] = {
    CompressionFormat.GZIP: (0, 9),
    CompressionFormat.ZLIB: (0, 9),
    CompressionFormat.DEFLATE: (0, 9),
    CompressionFormat.ZSTD: (1, 22),
    CompressionFormat.BROTLI: (0, 11),
    CompressionFormat.XZ: (0, 9),
    CompressionFormat.LZMA: (0, 9),
}


@dataclass
class CodecConfig:
    """Configuration for one decoder or encoder.

    Attributes:
        format: Format of the stream being decoded or produced.
        level: Compression level preset.
        custom_level: Custom numeric level (overrides level preset).
        chunk_size: Number of compressed bytes pulled from the source per read.
        window_bits: Brotli window size (lgwin).
    """

    format: CompressionFormat = CompressionFormat.NONE
    level: CompressionLevel = CompressionLevel.BALANCED
    custom_level: int | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    window_bits: int = 22

    def get_effective_level(self) -> int:
        """Get the effective compression level."""
        if self.custom_level is not None:
            return self.custom_level
        return self.level.get_level(self.format)

    def validate(self) -> None:
        """Validate configuration."""
        if self.chunk_size <= 0:
            raise CodecConfigError("chunk_size must be positive", self.format.value)
        if not 10 <= self.window_bits <= 24:
            raise CodecConfigError("window_bits must be between 10 and 24", self.format.value)
        if self.custom_level is not None and self.format in _LEVEL_RANGES:
            low, high = _LEVEL_RANGES[self.format]
            if not low <= self.custom_level <= high:
                raise CodecConfigError(
                    f"level {self.custom_level} is out of range {low}-{high}",
                    self.format.value,
                )


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class Decoder(Protocol):
    """Pull-based view of decoded bytes over a compressed source."""

    @property
    def format(self) -> CompressionFormat:
        """Get the format being decoded."""
        ...

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` decoded bytes; ``b""`` at end of stream."""
        ...

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Decode into ``buffer``; 0 at end of stream."""
        ...

    def __iter__(self) -> Iterator[bytes]:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class Encoder(Protocol):
    """Push-based compressor over an output sink."""

    @property
    def format(self) -> CompressionFormat:
        """Get the format being produced."""
        ...

    def write(self, data: bytes | memoryview) -> int:
        """Compress ``data`` and emit whatever output is ready."""
        ...

    def finalize(self) -> None:
        """Emit the stream footer and flush the sink. Call exactly once."""
        ...

    def abort(self) -> None:
        """Release the encoder without emitting a footer."""
        ...

"""recompress - streaming compressed-format sniffer and transcoder.

Reads a compressed stream, detects its format from the leading magic
bytes and re-encodes it into another format in a single bounded pass.
"""

from recompress.codecs import (
    CodecError,
    CompressionFormat,
    CompressionLevel,
    DecodingError,
    EncodingError,
    UnsupportedFormatError,
    get_decoder,
    get_encoder,
)
from recompress.config import TranscodeConfig
from recompress.engine import TranscodeMetrics, TranscodeResult, Transcoder, transcode
from recompress.sniffing import ReplayReader, SniffResult, reconstruct, sniff
from recompress.watchdog import StallWatchdog

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Core
    "transcode",
    "Transcoder",
    "TranscodeConfig",
    "TranscodeMetrics",
    "TranscodeResult",
    # Sniffing
    "sniff",
    "reconstruct",
    "SniffResult",
    "ReplayReader",
    # Codecs
    "CompressionFormat",
    "CompressionLevel",
    "get_decoder",
    "get_encoder",
    # Errors
    "CodecError",
    "DecodingError",
    "EncodingError",
    "UnsupportedFormatError",
    # Watchdog
    "StallWatchdog",
]

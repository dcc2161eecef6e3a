"""Codec layer: one decoder and one encoder per compressed format.

Every variant implements the same streaming interface, so the engine can
drain any decoder into any encoder through a single copy loop.

Example:
    >>> import io
    >>> from recompress.codecs import get_decoder, get_encoder
    >>>
    >>> sink = io.BytesIO()
    >>> with get_encoder("zstd", sink) as encoder:
    ...     _ = encoder.write(b"payload")
    >>> decoder = get_decoder("zstd", io.BytesIO(sink.getvalue()))
    >>> decoder.read()
    b'payload'
"""

from recompress.codecs.base import (
    # Protocols
    Decoder,
    Encoder,
    # Enums
    CompressionFormat,
    CompressionLevel,
    # Data classes
    CodecConfig,
    DEFAULT_CHUNK_SIZE,
    # Exceptions
    CodecConfigError,
    CodecError,
    DecodingError,
    EncoderStateError,
    EncodingError,
    UnsupportedFormatError,
)
from recompress.codecs.providers import (
    # Base
    BaseDecoder,
    BaseEncoder,
    # Variants
    NoneDecoder,
    NoneEncoder,
    GzipDecoder,
    GzipEncoder,
    ZlibDecoder,
    ZlibEncoder,
    DeflateDecoder,
    DeflateEncoder,
    XzDecoder,
    XzEncoder,
    LzmaDecoder,
    LzmaEncoder,
    ZstdDecoder,
    ZstdEncoder,
    BrotliDecoder,
    BrotliEncoder,
    # Factory
    get_decoder,
    get_encoder,
    register_codec,
    list_available_formats,
    is_format_available,
)

__all__ = [
    # Protocols
    "Decoder",
    "Encoder",
    # Enums
    "CompressionFormat",
    "CompressionLevel",
    # Data classes
    "CodecConfig",
    "DEFAULT_CHUNK_SIZE",
    # Exceptions
    "CodecConfigError",
    "CodecError",
    "DecodingError",
    "EncoderStateError",
    "EncodingError",
    "UnsupportedFormatError",
    # Base
    "BaseDecoder",
    "BaseEncoder",
    # Variants
    "NoneDecoder",
    "NoneEncoder",
    "GzipDecoder",
    "GzipEncoder",
    "ZlibDecoder",
    "ZlibEncoder",
    "DeflateDecoder",
    "DeflateEncoder",
    "XzDecoder",
    "XzEncoder",
    "LzmaDecoder",
    "LzmaEncoder",
    "ZstdDecoder",
    "ZstdEncoder",
    "BrotliDecoder",
    "BrotliEncoder",
    # Factory
    "get_decoder",
    "get_encoder",
    "register_codec",
    "list_available_formats",
    "is_format_available",
]

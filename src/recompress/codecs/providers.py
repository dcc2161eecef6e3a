"""Decoder and encoder implementations.

One decoder and one encoder exist per ``CompressionFormat``. They share a
uniform streaming interface so the engine can pair any of them without
format-specific glue. Optional codec libraries are loaded lazily.
"""

from __future__ import annotations

import lzma
import zlib
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterator, Type

from recompress.codecs.base import (
    CodecConfig,
    CodecError,
    CompressionFormat,
    CompressionLevel,
    DecodingError,
    EncoderStateError,
    EncodingError,
    UnsupportedFormatError,
)
from recompress.observability.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Optional Libraries
# =============================================================================


class _ZstdSupport:
    """Lazy access to the zstandard library."""

    _zstd = None

    @classmethod
    def _get_zstd(cls):
        """Lazy import zstandard."""
        if _ZstdSupport._zstd is None:
            try:
                import zstandard
            except ImportError:
                raise UnsupportedFormatError(
                    "zstd",
                    [f.value for f in list_available_formats()],
                ) from None
            _ZstdSupport._zstd = zstandard
        return _ZstdSupport._zstd


class _BrotliSupport:
    """Lazy access to the brotli library."""

    _brotli = None

    @classmethod
    def _get_brotli(cls):
        """Lazy import brotli."""
        if _BrotliSupport._brotli is None:
            try:
                import brotli
            except ImportError:
                raise UnsupportedFormatError(
                    "brotli",
                    [f.value for f in list_available_formats()],
                ) from None
            _BrotliSupport._brotli = brotli
        return _BrotliSupport._brotli


# =============================================================================
# Base Decoder
# =============================================================================


class BaseDecoder(ABC):
    """Abstract base class for decoders.

    Pulls compressed chunks from the source on demand, decodes them and
    hands out decoded bytes through ``read``/``readinto``. Subclasses
    implement the hooks ``_decode`` and ``_flush``, and ``_needs_input``
    when the codec can hold back input or output between calls.

    Each decoding step returns at most ``chunk_size`` bytes, so memory use
    stays bounded however far a stream expands.

    Every failure raised by a codec library is wrapped in ``DecodingError``.
    End of input with an incomplete compressed stream is also a
    ``DecodingError``; output is never silently truncated.
    """

    def __init__(self, source: BinaryIO, config: CodecConfig | None = None) -> None:
        """Initialize the decoder.

        Args:
            source: Readable binary stream holding compressed data.
            config: Codec configuration.
        """
        self._source = source
        self._config = config or CodecConfig(format=self.format)
        self._config.validate()
        self._pending = memoryview(b"")
        self._eof = False
        self._closed = False
        self.bytes_consumed = 0
        self.bytes_decoded = 0

    @property
    @abstractmethod
    def format(self) -> CompressionFormat:
        """Get the format being decoded."""
        pass

    @property
    def config(self) -> CodecConfig:
        """Get the configuration."""
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def _decode(self, data: bytes, limit: int) -> bytes:
        """Decode compressed input, returning at most ``limit`` bytes.

        ``data`` is empty when the codec still holds input or output from
        an earlier call (see ``_needs_input``).
        """
        pass

    @abstractmethod
    def _flush(self) -> bytes:
        """Finish decoding at end of input. Raise if the stream is incomplete."""
        pass

    def _needs_input(self) -> bool:
        """Whether the next step has to read from the source."""
        return True

    def _step(self, limit: int) -> bytes:
        if not self._needs_input():
            return self._decode(b"", limit)
        raw = self._source.read(limit)
        if not raw:
            self._eof = True
            return self._flush()
        self.bytes_consumed += len(raw)
        return self._decode(raw, limit)

    def _fill(self) -> None:
        while not self._pending and not self._eof:
            try:
                decoded = self._step(self._config.chunk_size)
            except CodecError:
                raise
            except Exception as e:
                raise DecodingError(f"Decoding failed: {e}", self.format.value) from e
            self.bytes_decoded += len(decoded)
            self._pending = memoryview(decoded)

    def read(self, size: int = -1) -> bytes:
        """Read decoded bytes.

        Args:
            size: Maximum number of bytes to return (-1 for everything left).

        Returns:
            Decoded bytes, ``b""`` once the compressed stream is exhausted.
        """
        if self._closed:
            raise ValueError("read from closed decoder")
        if size is None or size < 0:
            return b"".join(iter(self))
        self._fill()
        chunk = bytes(self._pending[:size])
        self._pending = self._pending[size:]
        return chunk

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Decode into a caller-owned buffer.

        Returns:
            Number of bytes written into ``buffer``, 0 at end of stream.
        """
        if self._closed:
            raise ValueError("read from closed decoder")
        self._fill()
        view = memoryview(buffer)
        n = min(len(view), len(self._pending))
        view[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(self._config.chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Release the decoder. The source itself is left open."""
        self._closed = True
        self._pending = memoryview(b"")

    def __enter__(self) -> "BaseDecoder":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class _IncrementalDecoder(BaseDecoder):
    """Decoder over a library decompression object with an output limit.

    Works with any object exposing ``decompress(data, max_length)``,
    ``eof`` and ``unused_data`` (zlib and lzma decompression objects).
    Subclasses report through ``_backlog`` whether the object still holds
    output or input after a call. When ``concatenated`` is set, data
    following the end of one stream starts a new one, as gzip members and
    xz streams allow.
    """

    concatenated = False

    def __init__(self, source: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(source, config)
        self._obj: Any = None
        self._input = b""
        self._backlog = False

    @abstractmethod
    def _new_object(self) -> Any:
        """Create a fresh decompression object."""
        pass

    @abstractmethod
    def _decompress(self, data: bytes, limit: int) -> bytes:
        """Run one bounded call on the current object and update ``_backlog``."""
        pass

    def _needs_input(self) -> bool:
        return not self._input and not self._backlog

    def _decode(self, data: bytes, limit: int) -> bytes:
        if not data:
            data, self._input = self._input, b""
        if self._obj is None:
            self._obj = self._new_object()
        elif self._obj.eof:
            if not self.concatenated:
                raise DecodingError("Unexpected data after end of stream", self.format.value)
            self._obj = self._new_object()
        out = self._decompress(data, limit)
        if self._obj.eof:
            self._backlog = False
            self._input = self._obj.unused_data
        return out

    def _flush(self) -> bytes:
        if self._obj is None:
            raise DecodingError("Compressed stream is empty", self.format.value)
        if not self._obj.eof:
            raise DecodingError("Compressed stream is truncated", self.format.value)
        return b""

    def close(self) -> None:
        super().close()
        self._obj = None
        self._input = b""


# =============================================================================
# Base Encoder
# =============================================================================


class BaseEncoder(ABC):
    """Abstract base class for encoders.

    Compressed output is written to the sink as soon as the codec produces
    it. ``finalize`` must be called exactly once to emit the footer; used
    as a context manager the encoder finalizes on normal exit and aborts
    (no footer) when an exception is propagating.
    """

    def __init__(self, sink: BinaryIO, config: CodecConfig | None = None) -> None:
        """Initialize the encoder.

        Args:
            sink: Writable binary stream receiving compressed data.
            config: Codec configuration.
        """
        self._sink = sink
        self._config = config or CodecConfig(format=self.format)
        self._config.validate()
        self._finalized = False
        self._aborted = False
        self.bytes_in = 0
        self.bytes_out = 0

    @property
    @abstractmethod
    def format(self) -> CompressionFormat:
        """Get the format being produced."""
        pass

    @property
    def config(self) -> CodecConfig:
        """Get the configuration."""
        return self._config

    @property
    def level(self) -> int:
        """Get the effective compression level."""
        return self._config.get_effective_level()

    @property
    def finalized(self) -> bool:
        return self._finalized

    @abstractmethod
    def _encode(self, data: bytes | memoryview) -> bytes | memoryview:
        """Compress one chunk. Override in subclasses."""
        pass

    @abstractmethod
    def _finish(self) -> bytes:
        """Return the remaining compressed data and footer."""
        pass

    def _release(self) -> None:
        """Drop codec state. Override when there is something to drop."""
        pass

    def _emit(self, data: bytes | memoryview) -> None:
        if not data:
            return
        try:
            self._sink.write(data)
        except OSError as e:
            raise EncodingError(f"Write to output failed: {e}", self.format.value) from e
        self.bytes_out += len(data)

    def _check_open(self) -> None:
        if self._finalized:
            raise EncoderStateError("Encoder is already finalized", self.format.value)
        if self._aborted:
            raise EncoderStateError("Encoder was aborted", self.format.value)

    def write(self, data: bytes | memoryview) -> int:
        """Compress data and write any ready output to the sink.

        Args:
            data: Uncompressed data chunk.

        Returns:
            Number of uncompressed bytes accepted.

        Raises:
            EncodingError: If compression or the sink write fails.
            EncoderStateError: If the encoder was finalized or aborted.
        """
        self._check_open()
        try:
            out = self._encode(data)
        except Exception as e:
            raise EncodingError(f"Encoding failed: {e}", self.format.value) from e
        self._emit(out)
        self.bytes_in += len(data)
        return len(data)

    def finalize(self) -> None:
        """Emit the footer and flush the sink.

        Raises:
            EncodingError: If finishing the stream or flushing fails.
            EncoderStateError: If called more than once or after abort.
        """
        self._check_open()
        self._finalized = True
        try:
            tail = self._finish()
        except Exception as e:
            raise EncodingError(f"Finalizing failed: {e}", self.format.value) from e
        finally:
            self._release()
        self._emit(tail)
        try:
            self._sink.flush()
        except OSError as e:
            raise EncodingError(f"Flushing output failed: {e}", self.format.value) from e

    def abort(self) -> None:
        """Release the encoder without writing a footer."""
        if self._finalized or self._aborted:
            return
        self._aborted = True
        self._release()
        logger.debug("Encoder aborted", format=self.format.value, bytes_out=self.bytes_out)

    def __enter__(self) -> "BaseEncoder":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None:
            self.abort()
        elif not self._finalized and not self._aborted:
            self.finalize()

    def get_extension(self) -> str:
        """Get file extension for the produced stream."""
        return self.format.extension


class _ObjectEncoder(BaseEncoder):
    """Encoder over a library compression object with ``compress``/``flush``."""

    def __init__(self, sink: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(sink, config)
        self._obj: Any = self._new_object()

    @abstractmethod
    def _new_object(self) -> Any:
        """Create the compression object."""
        pass

    def _encode(self, data: bytes | memoryview) -> bytes:
        return self._obj.compress(data)

    def _finish(self) -> bytes:
        return self._obj.flush()

    def _release(self) -> None:
        self._obj = None


# =============================================================================
# Pass-through
# =============================================================================


class NoneDecoder(BaseDecoder):
    """Pass-through decoder: the source is returned unchanged."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.NONE

    def _decode(self, data: bytes, limit: int) -> bytes:
        return data

    def _flush(self) -> bytes:
        return b""


class NoneEncoder(BaseEncoder):
    """Pass-through encoder: data is written to the sink unchanged."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.NONE

    def _encode(self, data: bytes | memoryview) -> bytes | memoryview:
        return data

    def _finish(self) -> bytes:
        return b""


# =============================================================================
# Deflate Family (gzip, zlib, raw deflate)
# =============================================================================


def _is_zlib_header(header: bytes) -> bool:
    """Check whether two bytes form a valid zlib stream header (RFC 1950)."""
    cmf, flg = header[0], header[1]
    return (
        cmf & 0x0F == 8
        and cmf >> 4 <= 7
        and not flg & 0x20
        and ((cmf << 8) | flg) % 31 == 0
    )


class _ZlibDecoder(_IncrementalDecoder):
    _wbits = zlib.MAX_WBITS

    def _new_object(self) -> Any:
        return zlib.decompressobj(self._wbits)

    def _decompress(self, data: bytes, limit: int) -> bytes:
        out = self._obj.decompress(data, limit)
        self._input = self._obj.unconsumed_tail
        # A full result may leave output inside zlib even with no input left.
        self._backlog = len(out) == limit
        return out


class GzipDecoder(_ZlibDecoder):
    """Gzip decoder; concatenated members decode as one stream."""

    concatenated = True
    _wbits = 16 + zlib.MAX_WBITS

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.GZIP


class ZlibDecoder(_ZlibDecoder):
    """Zlib (RFC 1950) decoder."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.ZLIB


class DeflateDecoder(_ZlibDecoder):
    """Deflate decoder.

    Accepts raw deflate (RFC 1951) as well as zlib-wrapped deflate: the
    ``78 01`` signature that classifies a stream as deflate is a zlib
    header, while raw deflate has no header at all. The first two bytes
    decide which one is read.
    """

    def __init__(self, source: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(source, config)
        self._header = b""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.DEFLATE

    def _decode(self, data: bytes, limit: int) -> bytes:
        if self._obj is None:
            self._header += data
            if len(self._header) < 2:
                return b""
            wrapped = _is_zlib_header(self._header)
            self._obj = zlib.decompressobj(zlib.MAX_WBITS if wrapped else -zlib.MAX_WBITS)
            data, self._header = self._header, b""
            logger.debug("Deflate stream layout", zlib_wrapped=wrapped)
        return super()._decode(data, limit)


class _ZlibEncoder(_ObjectEncoder):
    _wbits = zlib.MAX_WBITS

    def _new_object(self) -> Any:
        return zlib.compressobj(self.level, zlib.DEFLATED, self._wbits)


class GzipEncoder(_ZlibEncoder):
    """Gzip encoder using the zlib module's gzip framing."""

    _wbits = 16 + zlib.MAX_WBITS

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.GZIP


class ZlibEncoder(_ZlibEncoder):
    """Zlib (RFC 1950) encoder."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.ZLIB


class DeflateEncoder(_ZlibEncoder):
    """Raw deflate (RFC 1951) encoder, no header or trailer."""

    _wbits = -zlib.MAX_WBITS

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.DEFLATE


# =============================================================================
# LZMA Family (xz, legacy lzma)
# =============================================================================


class _LzmaDecoder(_IncrementalDecoder):
    def _decompress(self, data: bytes, limit: int) -> bytes:
        out = self._obj.decompress(data, limit)
        self._backlog = not self._obj.needs_input
        return out


class XzDecoder(_LzmaDecoder):
    """Xz decoder; concatenated streams decode as one stream."""

    concatenated = True

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.XZ

    def _new_object(self) -> Any:
        return lzma.LZMADecompressor(format=lzma.FORMAT_XZ)


class LzmaDecoder(_LzmaDecoder):
    """Legacy ``.lzma`` (LZMA-alone) decoder."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.LZMA

    def _new_object(self) -> Any:
        return lzma.LZMADecompressor(format=lzma.FORMAT_ALONE)


class XzEncoder(_ObjectEncoder):
    """Xz encoder with a CRC64 integrity check."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.XZ

    def _new_object(self) -> Any:
        return lzma.LZMACompressor(format=lzma.FORMAT_XZ, preset=self.level)


class LzmaEncoder(_ObjectEncoder):
    """Legacy ``.lzma`` (LZMA-alone) encoder."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.LZMA

    def _new_object(self) -> Any:
        return lzma.LZMACompressor(format=lzma.FORMAT_ALONE, preset=self.level)


# =============================================================================
# Zstandard
# =============================================================================


_ZSTD_MAGIC = 0xFD2FB528
_ZSTD_SKIPPABLE_MASK = 0xFFFFFFF0
_ZSTD_SKIPPABLE_MAGIC = 0x184D2A50


class _ZstdFrameScanner:
    """Follows zstd frame boundaries (RFC 8878) in the bytes fed to it.

    The zstandard stream reader reports end of input the same way whether
    or not the last frame was complete, so the decoder checks
    ``at_boundary`` once the source is exhausted.
    """

    _DICT_ID_SIZES = (0, 1, 2, 4)

    def __init__(self, fmt: str = "zstd") -> None:
        self._format = fmt
        self._state = "magic"
        self._need = 4
        self._header = bytearray()
        self._skip = 0
        self._checksum = False
        self.frames = 0

    @property
    def at_boundary(self) -> bool:
        return self._state == "magic" and not self._header and not self._skip

    def feed(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            if self._skip:
                n = min(self._skip, len(view))
                self._skip -= n
                view = view[n:]
                continue
            n = min(self._need - len(self._header), len(view))
            self._header += view[:n]
            view = view[n:]
            if len(self._header) == self._need:
                field_bytes = bytes(self._header)
                self._header.clear()
                self._advance(field_bytes)

    def _expect(self, state: str, size: int, skip: int = 0) -> None:
        self._state, self._need, self._skip = state, size, skip

    def _end_frame(self, skip: int = 0) -> None:
        self.frames += 1
        self._expect("magic", 4, skip)

    def _advance(self, field_bytes: bytes) -> None:
        value = int.from_bytes(field_bytes, "little")
        if self._state == "magic":
            if value == _ZSTD_MAGIC:
                self._expect("descriptor", 1)
            elif value & _ZSTD_SKIPPABLE_MASK == _ZSTD_SKIPPABLE_MAGIC:
                self._expect("skippable", 4)
            elif self.frames:
                raise DecodingError("Unexpected data after end of stream", self._format)
            else:
                raise DecodingError("Missing zstd frame magic", self._format)
        elif self._state == "skippable":
            self._end_frame(skip=value)
        elif self._state == "descriptor":
            single_segment = bool(value & 0x20)
            self._checksum = bool(value & 0x04)
            content_size = (int(single_segment), 2, 4, 8)[value >> 6]
            size = (
                (0 if single_segment else 1)
                + self._DICT_ID_SIZES[value & 0x03]
                + content_size
            )
            if size:
                self._expect("frame_header", size)
            else:
                self._expect("block", 3)
        elif self._state == "frame_header":
            self._expect("block", 3)
        elif self._state == "block":
            last, block_type, size = value & 1, (value >> 1) & 3, value >> 3
            if block_type == 3:
                raise DecodingError("Reserved block type", self._format)
            body = 1 if block_type == 1 else size
            if not last:
                self._expect("block", 3, body)
            elif self._checksum:
                self._expect("checksum", 4, body)
            else:
                self._end_frame(skip=body)
        elif self._state == "checksum":
            self._end_frame()


class _ZstdInput:
    """Source handed to the zstandard reader; counts and scans what it pulls."""

    def __init__(self, decoder: "ZstdDecoder") -> None:
        self._decoder = decoder

    def read(self, size: int = -1) -> bytes:
        return self._decoder._pull(size)


class ZstdDecoder(_ZstdSupport, BaseDecoder):
    """Zstandard decoder; concatenated frames decode as one stream.

    Decoding goes through ``ZstdDecompressor.stream_reader``, which fills
    at most ``chunk_size`` bytes per read.
    """

    def __init__(self, source: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(source, config)
        self._frames = _ZstdFrameScanner(self.format.value)
        self._reader: Any = self._get_zstd().ZstdDecompressor().stream_reader(
            _ZstdInput(self),
            read_size=self._config.chunk_size,
            read_across_frames=True,
            closefd=False,
        )

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.ZSTD

    def _pull(self, size: int) -> bytes:
        raw = self._source.read(size)
        if raw:
            self.bytes_consumed += len(raw)
            self._frames.feed(raw)
        return raw

    def _step(self, limit: int) -> bytes:
        out = self._reader.read(limit)
        if out:
            return out
        self._eof = True
        return self._flush()

    def _decode(self, data: bytes, limit: int) -> bytes:
        # Input reaches the library through _pull instead.
        raise NotImplementedError

    def _flush(self) -> bytes:
        if not self.bytes_consumed:
            raise DecodingError("Compressed stream is empty", self.format.value)
        if not self._frames.at_boundary:
            raise DecodingError("Compressed stream is truncated", self.format.value)
        return b""

    def close(self) -> None:
        super().close()
        self._reader.close()


class ZstdEncoder(_ZstdSupport, _ObjectEncoder):
    """Zstandard encoder producing a single frame."""

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.ZSTD

    def _new_object(self) -> Any:
        zstd = self._get_zstd()
        return zstd.ZstdCompressor(level=self.level).compressobj()


# =============================================================================
# Brotli
# =============================================================================


class BrotliDecoder(_BrotliSupport, BaseDecoder):
    """Brotli decoder.

    Brotli streams carry no magic bytes, so this decoder is only selected
    by an explicit hint or by the caller. Output is capped per call with
    ``output_buffer_limit``; the decompressor keeps the rest of its input
    until ``can_accept_more_data`` turns true again.
    """

    def __init__(self, source: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(source, config)
        self._obj: Any = self._get_brotli().Decompressor()
        self._started = False

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.BROTLI

    def _needs_input(self) -> bool:
        return self._obj.can_accept_more_data()

    def _decode(self, data: bytes, limit: int) -> bytes:
        if data:
            if self._obj.is_finished():
                raise DecodingError("Unexpected data after end of stream", self.format.value)
            self._started = True
        return self._obj.process(data, output_buffer_limit=limit)

    def _flush(self) -> bytes:
        if not self._started:
            raise DecodingError("Compressed stream is empty", self.format.value)
        if not self._obj.is_finished():
            raise DecodingError("Compressed stream is truncated", self.format.value)
        return b""


class BrotliEncoder(_BrotliSupport, BaseEncoder):
    """Brotli encoder."""

    def __init__(self, sink: BinaryIO, config: CodecConfig | None = None) -> None:
        super().__init__(sink, config)
        brotli = self._get_brotli()
        self._obj: Any = brotli.Compressor(
            quality=self.level,
            lgwin=self._config.window_bits,
        )

    @property
    def format(self) -> CompressionFormat:
        return CompressionFormat.BROTLI

    def _encode(self, data: bytes | memoryview) -> bytes:
        return self._obj.process(bytes(data))

    def _finish(self) -> bytes:
        return self._obj.finish()

    def _release(self) -> None:
        self._obj = None


# =============================================================================
# Registry and Factory
# =============================================================================


_CODEC_REGISTRY: dict[CompressionFormat, tuple[Type[BaseDecoder], Type[BaseEncoder]]] = {
    CompressionFormat.NONE: (NoneDecoder, NoneEncoder),
    CompressionFormat.GZIP: (GzipDecoder, GzipEncoder),
    CompressionFormat.ZLIB: (ZlibDecoder, ZlibEncoder),
    CompressionFormat.DEFLATE: (DeflateDecoder, DeflateEncoder),
    CompressionFormat.XZ: (XzDecoder, XzEncoder),
    CompressionFormat.ZSTD: (ZstdDecoder, ZstdEncoder),
    CompressionFormat.BROTLI: (BrotliDecoder, BrotliEncoder),
    CompressionFormat.LZMA: (LzmaDecoder, LzmaEncoder),
}


def register_codec(
    format: CompressionFormat,
    decoder_class: Type[BaseDecoder],
    encoder_class: Type[BaseEncoder],
) -> None:
    """Register a custom decoder/encoder pair.

    Args:
        format: Format identifier.
        decoder_class: Decoder class to register.
        encoder_class: Encoder class to register.
    """
    _CODEC_REGISTRY[format] = (decoder_class, encoder_class)


def _resolve(format: str | CompressionFormat) -> CompressionFormat:
    if isinstance(format, CompressionFormat):
        fmt = format
    else:
        fmt = CompressionFormat.from_name(format)
    if fmt not in _CODEC_REGISTRY:
        raise UnsupportedFormatError(fmt.value, [f.value for f in _CODEC_REGISTRY])
    return fmt


def _build_config(
    format: CompressionFormat,
    level: CompressionLevel | int,
    **kwargs: Any,
) -> CodecConfig:
    custom_level = level if isinstance(level, int) else None
    level_preset = level if isinstance(level, CompressionLevel) else CompressionLevel.BALANCED
    return CodecConfig(
        format=format,
        level=level_preset,
        custom_level=custom_level,
        **{k: v for k, v in kwargs.items() if hasattr(CodecConfig, k)},
    )


def get_decoder(
    format: str | CompressionFormat,
    source: BinaryIO,
    **kwargs: Any,
) -> BaseDecoder:
    """Create a decoder reading compressed data from ``source``.

    Args:
        format: Format name or enum.
        source: Readable binary stream.
        **kwargs: Additional configuration options (e.g. ``chunk_size``).

    Returns:
        Configured decoder instance.

    Raises:
        UnsupportedFormatError: If the format is unknown or unavailable.
    """
    fmt = _resolve(format)
    decoder_class = _CODEC_REGISTRY[fmt][0]
    return decoder_class(source, _build_config(fmt, CompressionLevel.BALANCED, **kwargs))


def get_encoder(
    format: str | CompressionFormat,
    sink: BinaryIO,
    level: CompressionLevel | int = CompressionLevel.BALANCED,
    **kwargs: Any,
) -> BaseEncoder:
    """Create an encoder writing compressed data to ``sink``.

    Args:
        format: Format name or enum.
        sink: Writable binary stream.
        level: Compression level preset or numeric level.
        **kwargs: Additional configuration options (e.g. ``window_bits``).

    Returns:
        Configured encoder instance.

    Raises:
        UnsupportedFormatError: If the format is unknown or unavailable.
    """
    fmt = _resolve(format)
    encoder_class = _CODEC_REGISTRY[fmt][1]
    return encoder_class(sink, _build_config(fmt, level, **kwargs))


def list_available_formats() -> list[CompressionFormat]:
    """List all formats whose codec libraries are importable.

    Returns:
        List of available formats.
    """
    return [fmt for fmt in _CODEC_REGISTRY if is_format_available(fmt)]


def is_format_available(format: str | CompressionFormat) -> bool:
    """Check if a format can be decoded and encoded.

    Args:
        format: Format to check.

    Returns:
        True if the format is available.
    """
    if isinstance(format, str) and not isinstance(format, CompressionFormat):
        try:
            format = CompressionFormat.from_name(format)
        except UnsupportedFormatError:
            return False

    if format not in _CODEC_REGISTRY:
        return False

    if format == CompressionFormat.ZSTD:
        try:
            import zstandard  # noqa: F401
            return True
        except ImportError:
            return False

    if format == CompressionFormat.BROTLI:
        try:
            import brotli  # noqa: F401
            return True
        except ImportError:
            return False

    # Built-in formats are always available
    return True

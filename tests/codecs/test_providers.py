"""Tests for decoder and encoder implementations."""

import gzip
import io
import lzma
import zlib

import pytest

from recompress.codecs import (
    CompressionFormat,
    CompressionLevel,
    DecodingError,
    DeflateDecoder,
    EncoderStateError,
    EncodingError,
    GzipDecoder,
    GzipEncoder,
    NoneDecoder,
    NoneEncoder,
    UnsupportedFormatError,
    get_decoder,
    get_encoder,
    is_format_available,
    list_available_formats,
    register_codec,
)
from recompress.codecs import providers


def decode(fmt, data, **kwargs):
    return get_decoder(fmt, io.BytesIO(data), **kwargs).read()


# Single-segment frame holding one raw block with the bytes "data".
RAW_ZSTD_FRAME = b"\x28\xb5\x2f\xfd\x20\x04" + (33).to_bytes(3, "little") + b"data"
SKIPPABLE_FRAME = (0x184D2A50).to_bytes(4, "little") + (3).to_bytes(4, "little") + b"pad"


class FailingSink(io.BytesIO):
    """Sink whose writes fail after the first one."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def write(self, data):
        self.calls += 1
        if self.calls > 1:
            raise OSError("No space left on device")
        return super().write(data)


class TestRoundtrip:
    """Encode-then-decode for every available format."""

    def test_roundtrip(self, any_format, compress, text_payload):
        """Test that decoding restores the encoded payload."""
        encoded = compress(any_format, text_payload)
        assert decode(any_format, encoded) == text_payload

    def test_empty_payload(self, any_format, compress):
        """Test that an empty payload produces a valid, decodable artifact."""
        encoded = compress(any_format, b"")
        if any_format != CompressionFormat.NONE:
            assert encoded
        assert decode(any_format, encoded) == b""

    def test_single_byte_reads(self, any_format, compress, random_payload):
        """Test decoding when the source yields one byte per read."""
        payload = random_payload[:2000]
        encoded = compress(any_format, payload)
        assert decode(any_format, encoded, chunk_size=1) == payload

    def test_compresses_text(self, any_format, compress, text_payload):
        """Test that compressible input actually shrinks."""
        encoded = compress(any_format, text_payload)
        if any_format == CompressionFormat.NONE:
            assert encoded == text_payload
        else:
            assert len(encoded) < len(text_payload) * 0.2


class TestStandardArtifacts:
    """Decoders accept streams produced by the reference libraries."""

    def test_gzip(self, text_payload):
        """Test decoding gzip.compress output."""
        assert decode("gzip", gzip.compress(text_payload)) == text_payload

    def test_zlib(self, text_payload):
        """Test decoding zlib.compress output."""
        assert decode("zlib", zlib.compress(text_payload)) == text_payload

    def test_xz(self, text_payload):
        """Test decoding lzma.compress output."""
        assert decode("xz", lzma.compress(text_payload)) == text_payload

    def test_lzma_alone(self, text_payload):
        """Test decoding legacy .lzma output."""
        encoded = lzma.compress(text_payload, format=lzma.FORMAT_ALONE)
        assert encoded[:2] == b"\x5d\x00"
        assert decode("lzma", encoded) == text_payload

    def test_zstd(self, text_payload):
        """Test decoding zstandard output."""
        zstd = pytest.importorskip("zstandard")
        encoded = zstd.ZstdCompressor().compress(text_payload)
        assert decode("zstd", encoded) == text_payload

    def test_brotli(self, text_payload):
        """Test decoding brotli output."""
        brotli = pytest.importorskip("brotli")
        assert decode("brotli", brotli.compress(text_payload)) == text_payload

    def test_encoders_produce_standard_artifacts(self, compress, text_payload):
        """Test that encoded streams decode with the reference libraries."""
        assert gzip.decompress(compress("gzip", text_payload)) == text_payload
        assert zlib.decompress(compress("zlib", text_payload)) == text_payload
        assert zlib.decompress(compress("deflate", text_payload), -15) == text_payload
        assert lzma.decompress(compress("xz", text_payload)) == text_payload
        assert (
            lzma.decompress(compress("lzma", text_payload), format=lzma.FORMAT_ALONE)
            == text_payload
        )


class TestDeflate:
    """Tests for the deflate decoder."""

    def test_raw_deflate(self, text_payload):
        """Test headerless deflate input."""
        obj = zlib.compressobj(6, zlib.DEFLATED, -zlib.MAX_WBITS)
        encoded = obj.compress(text_payload) + obj.flush()
        assert decode("deflate", encoded) == text_payload

    def test_zlib_wrapped_low_level(self, text_payload):
        """Test the 78 01 stream that classifies as deflate."""
        encoded = zlib.compress(text_payload, 1)
        assert encoded[:2] == b"\x78\x01"
        assert decode("deflate", encoded) == text_payload

    def test_header_split_across_reads(self, text_payload):
        """Test header detection when the first read is one byte."""
        encoded = zlib.compress(text_payload, 1)
        decoder = DeflateDecoder(io.BytesIO(encoded))
        decoder.config.chunk_size = 1
        assert decoder.read() == text_payload

    def test_is_zlib_header(self):
        """Test zlib header recognition."""
        assert providers._is_zlib_header(b"\x78\x01")
        assert providers._is_zlib_header(b"\x78\x9c")
        assert providers._is_zlib_header(b"\x78\xda")
        assert not providers._is_zlib_header(b"\x78\x00")
        assert not providers._is_zlib_header(b"\x1f\x8b")


class TestConcatenation:
    """Multi-member inputs decode as one stream."""

    def test_gzip_members(self):
        """Test concatenated gzip members."""
        encoded = gzip.compress(b"first ") + gzip.compress(b"second")
        assert decode("gzip", encoded) == b"first second"

    def test_gzip_members_small_reads(self):
        """Test member boundaries falling inside reads of any size."""
        encoded = gzip.compress(b"first ") + gzip.compress(b"second")
        assert decode("gzip", encoded, chunk_size=7) == b"first second"

    def test_xz_streams(self):
        """Test concatenated xz streams."""
        encoded = lzma.compress(b"first ") + lzma.compress(b"second")
        assert decode("xz", encoded) == b"first second"

    def test_zstd_frames(self, compress, require_format):
        """Test concatenated zstd frames."""
        require_format(CompressionFormat.ZSTD)
        encoded = compress("zstd", b"first ") + compress("zstd", b"second")
        assert decode("zstd", encoded) == b"first second"

    def test_trailing_data_rejected_for_zlib(self):
        """Test that zlib streams do not accept trailing garbage."""
        with pytest.raises(DecodingError, match="after end of stream"):
            decode("zlib", zlib.compress(b"payload") + b"junk")


class TestMalformedInput:
    """Malformed input always fails with DecodingError."""

    def test_truncated(self, any_format, compress, text_payload):
        """Test that a cut-off stream is never silently accepted."""
        if any_format == CompressionFormat.NONE:
            pytest.skip("pass-through has no framing")
        encoded = compress(any_format, text_payload)
        with pytest.raises(DecodingError):
            decode(any_format, encoded[: len(encoded) // 2])

    def test_empty_compressed_stream(self, any_format):
        """Test that zero input bytes are not a valid compressed stream."""
        if any_format == CompressionFormat.NONE:
            assert decode(any_format, b"") == b""
            return
        with pytest.raises(DecodingError, match="empty"):
            decode(any_format, b"")

    def test_corrupt_gzip(self):
        """Test garbage after a gzip signature."""
        with pytest.raises(DecodingError) as exc_info:
            decode("gzip", b"\x1f\x8b" + b"\xff" * 64)
        assert exc_info.value.format == "gzip"
        assert exc_info.value.__cause__ is not None

    def test_corrupt_xz(self):
        """Test garbage after an xz signature."""
        with pytest.raises(DecodingError):
            decode("xz", b"\xfd7zXZ\x00" + b"\x00" * 64)

    def test_truncated_gzip_message(self, text_payload):
        """Test the message for a stream missing its trailer."""
        encoded = gzip.compress(text_payload)[:-4]
        with pytest.raises(DecodingError, match="truncated"):
            decode("gzip", encoded)


class TestBoundedOutput:
    """Each decoding step yields at most one chunk of output."""

    def test_readinto_never_exceeds_chunk(self, any_format, compress):
        """Test that a large buffer still receives one chunk at a time."""
        payload = bytes(1024 * 1024)
        encoded = compress(any_format, payload, level=CompressionLevel.FASTEST)
        decoder = get_decoder(any_format, io.BytesIO(encoded), chunk_size=4096)
        buffer = bytearray(len(payload))
        total = 0
        while True:
            n = decoder.readinto(buffer)
            if n == 0:
                break
            assert n <= 4096
            total += n
        assert total == len(payload)
        assert decoder.bytes_decoded == len(payload)

    def test_concatenated_members_small_chunks(self):
        """Test member boundaries falling inside a bounded step."""
        encoded = gzip.compress(b"a" * 5000) + gzip.compress(b"b" * 5000)
        assert decode("gzip", encoded, chunk_size=64) == b"a" * 5000 + b"b" * 5000


class TestZstdFrameScanner:
    """Tests for zstd frame boundary tracking."""

    def test_boundary_after_last_byte(self):
        """Test that only a complete frame ends on a boundary."""
        scanner = providers._ZstdFrameScanner()
        assert scanner.at_boundary
        for i in range(len(RAW_ZSTD_FRAME) - 1):
            scanner.feed(RAW_ZSTD_FRAME[i : i + 1])
            assert not scanner.at_boundary
        scanner.feed(RAW_ZSTD_FRAME[-1:])
        assert scanner.at_boundary
        assert scanner.frames == 1

    def test_content_checksum(self):
        """Test that the checksum is part of the frame."""
        frame = b"\x28\xb5\x2f\xfd\x24\x04" + (33).to_bytes(3, "little") + b"data"
        scanner = providers._ZstdFrameScanner()
        scanner.feed(frame)
        assert not scanner.at_boundary
        scanner.feed(b"\x00" * 4)
        assert scanner.at_boundary

    def test_skippable_frame(self):
        """Test skipping over a skippable frame."""
        scanner = providers._ZstdFrameScanner()
        scanner.feed(SKIPPABLE_FRAME + RAW_ZSTD_FRAME)
        assert scanner.at_boundary
        assert scanner.frames == 2

    def test_not_a_frame(self):
        """Test input that does not start with a frame magic."""
        with pytest.raises(DecodingError, match="magic"):
            providers._ZstdFrameScanner().feed(b"junkjunk")

    def test_trailing_garbage(self):
        """Test bytes after the last frame."""
        with pytest.raises(DecodingError, match="after end of stream"):
            providers._ZstdFrameScanner().feed(RAW_ZSTD_FRAME + b"junk")

    def test_decoder_uses_frame_boundaries(self, require_format):
        """Test the zstd decoder on hand-built frames."""
        require_format(CompressionFormat.ZSTD)
        assert decode("zstd", RAW_ZSTD_FRAME) == b"data"
        assert decode("zstd", SKIPPABLE_FRAME + RAW_ZSTD_FRAME) == b"data"
        with pytest.raises(DecodingError, match="truncated"):
            decode("zstd", RAW_ZSTD_FRAME[:-1])
        with pytest.raises(DecodingError, match="after end of stream"):
            decode("zstd", RAW_ZSTD_FRAME + b"junk")


class TestDecoder:
    """Tests for the BaseDecoder reading interface."""

    def test_read_sized(self, text_payload):
        """Test bounded reads."""
        decoder = GzipDecoder(io.BytesIO(gzip.compress(text_payload)))
        assert decoder.read(10) == text_payload[:10]
        assert decoder.read(0) == b""
        assert decoder.read() == text_payload[10:]
        assert decoder.read(10) == b""

    def test_readinto(self, text_payload):
        """Test decoding into a caller buffer."""
        decoder = GzipDecoder(io.BytesIO(gzip.compress(text_payload)))
        buffer = bytearray(4096)
        out = bytearray()
        while True:
            n = decoder.readinto(buffer)
            if n == 0:
                break
            assert n <= len(buffer)
            out += buffer[:n]
        assert bytes(out) == text_payload

    def test_iteration(self, text_payload):
        """Test iterating over decoded chunks."""
        decoder = GzipDecoder(io.BytesIO(gzip.compress(text_payload)))
        assert b"".join(decoder) == text_payload

    def test_counters(self, text_payload):
        """Test consumed and decoded byte counters."""
        encoded = gzip.compress(text_payload)
        decoder = GzipDecoder(io.BytesIO(encoded))
        decoder.read()
        assert decoder.bytes_consumed == len(encoded)
        assert decoder.bytes_decoded == len(text_payload)

    def test_closed_decoder(self):
        """Test reading after close."""
        decoder = NoneDecoder(io.BytesIO(b"data"))
        with decoder:
            pass
        assert decoder.closed
        with pytest.raises(ValueError):
            decoder.read()

    def test_source_left_open(self):
        """Test that closing the decoder does not close the source."""
        source = io.BytesIO(b"data")
        NoneDecoder(source).close()
        assert not source.closed


class TestEncoder:
    """Tests for the BaseEncoder lifecycle."""

    def test_write_after_finalize(self):
        """Test that a finalized encoder rejects data."""
        encoder = GzipEncoder(io.BytesIO())
        encoder.write(b"data")
        encoder.finalize()
        with pytest.raises(EncoderStateError):
            encoder.write(b"more")

    def test_finalize_twice(self):
        """Test that finalize runs exactly once."""
        encoder = GzipEncoder(io.BytesIO())
        encoder.finalize()
        with pytest.raises(EncoderStateError):
            encoder.finalize()

    def test_abort_writes_no_footer(self, text_payload):
        """Test that an aborted stream is incomplete."""
        sink = io.BytesIO()
        encoder = GzipEncoder(sink)
        encoder.write(text_payload)
        encoder.abort()
        with pytest.raises(EncoderStateError):
            encoder.finalize()
        with pytest.raises(DecodingError):
            decode("gzip", sink.getvalue())

    def test_context_manager_finalizes(self):
        """Test normal exit from the context manager."""
        sink = io.BytesIO()
        with GzipEncoder(sink) as encoder:
            encoder.write(b"data")
        assert encoder.finalized
        assert gzip.decompress(sink.getvalue()) == b"data"

    def test_context_manager_aborts_on_error(self):
        """Test that an exception skips the footer."""
        sink = io.BytesIO()
        with pytest.raises(RuntimeError):
            with GzipEncoder(sink) as encoder:
                encoder.write(b"data")
                raise RuntimeError("upstream failure")
        assert not encoder.finalized
        with pytest.raises(EncoderStateError):
            encoder.write(b"more")

    def test_sink_failure(self, random_payload):
        """Test that sink errors surface as EncodingError."""
        encoder = NoneEncoder(FailingSink())
        encoder.write(b"first")
        with pytest.raises(EncodingError, match="No space left"):
            encoder.write(random_payload)

    def test_counters(self, text_payload):
        """Test byte counters."""
        sink = io.BytesIO()
        with GzipEncoder(sink) as encoder:
            encoder.write(text_payload)
        assert encoder.bytes_in == len(text_payload)
        assert encoder.bytes_out == len(sink.getvalue())

    def test_extension(self):
        """Test extension of the produced stream."""
        assert GzipEncoder(io.BytesIO()).get_extension() == ".gz"

    def test_zstd_frame_magic(self, compress, require_format):
        """Test that zstd output starts with the frame magic."""
        require_format(CompressionFormat.ZSTD)
        assert compress("zstd", b"data")[:4] == b"\x28\xb5\x2f\xfd"


class TestFactory:
    """Tests for the registry and factory functions."""

    def test_get_decoder_by_name(self):
        """Test case-insensitive lookup."""
        assert isinstance(get_decoder("GZIP", io.BytesIO()), GzipDecoder)

    def test_get_encoder_unknown(self):
        """Test unknown format."""
        with pytest.raises(UnsupportedFormatError):
            get_encoder("rar", io.BytesIO())

    def test_get_encoder_level(self):
        """Test preset and numeric levels."""
        assert get_encoder("gzip", io.BytesIO(), level=1).level == 1
        assert get_encoder("xz", io.BytesIO(), level=CompressionLevel.FAST).level == 3
        assert get_encoder("gzip", io.BytesIO()).level == 6

    def test_builtin_formats_available(self):
        """Test that stdlib-backed formats are always available."""
        available = list_available_formats()
        for fmt in ("none", "gzip", "zlib", "deflate", "xz", "lzma"):
            assert CompressionFormat(fmt) in available
            assert is_format_available(fmt)

    def test_unknown_format_unavailable(self):
        """Test availability of an unknown format."""
        assert not is_format_available("rar")

    def test_register_codec(self):
        """Test registering a custom codec pair."""

        class UpperDecoder(NoneDecoder):
            def _decode(self, data, limit):
                return data.upper()

        original = providers._CODEC_REGISTRY[CompressionFormat.NONE]
        register_codec(CompressionFormat.NONE, UpperDecoder, NoneEncoder)
        try:
            decoder = get_decoder("none", io.BytesIO(b"shout"))
            assert decoder.read() == b"SHOUT"
        finally:
            providers._CODEC_REGISTRY[CompressionFormat.NONE] = original

"""Tests for format sniffing and stream reconstruction."""

import io

import pytest

from recompress.codecs import CompressionFormat
from recompress.sniffing import (
    DEFAULT_SIGNATURES,
    SNIFF_SIZE,
    DetectionMethod,
    ReplayReader,
    SignatureTable,
    detect_format,
    reconstruct,
    sniff,
)


class CountingSource(io.BytesIO):
    """BytesIO recording how many read calls were made."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        return super().read(size)

    def read1(self, size=-1):
        self.reads += 1
        return super().read1(size)


class TrickleSource:
    """Source without read1 returning at most ``step`` bytes per read."""

    def __init__(self, data, step=1):
        self._data = data
        self._step = step

    def read(self, size=-1):
        if size is None or size < 0:
            size = len(self._data)
        chunk, self._data = self._data[: min(size, self._step)], self._data[min(size, self._step):]
        return chunk


class TestSignatureTable:
    """Tests for the signature table."""

    def test_default_order(self):
        """Test that signatures are tried in a fixed order."""
        assert [sig.format for sig in DEFAULT_SIGNATURES] == [
            CompressionFormat.ZSTD,
            CompressionFormat.GZIP,
            CompressionFormat.DEFLATE,
            CompressionFormat.ZLIB,
            CompressionFormat.XZ,
            CompressionFormat.LZMA,
        ]

    def test_longest_signature_fits_sniff_window(self):
        """Test that the sniff window covers every signature."""
        assert DEFAULT_SIGNATURES.max_length == SNIFF_SIZE

    def test_first_match_wins(self):
        """Test overlapping signatures."""
        table = SignatureTable(
            [(b"\x1f", CompressionFormat.ZLIB), (b"\x1f\x8b", CompressionFormat.GZIP)]
        )
        assert table.match(b"\x1f\x8b\x08") == CompressionFormat.ZLIB

    def test_empty_magic_rejected(self):
        """Test that a signature must have bytes."""
        with pytest.raises(ValueError):
            SignatureTable([(b"", CompressionFormat.GZIP)])


class TestDetectFormat:
    """Tests for prefix classification."""

    @pytest.mark.parametrize(
        "prefix, expected",
        [
            (b"\x28\xb5\x2f\xfd\x04\x00", CompressionFormat.ZSTD),
            (b"\x1f\x8b\x08\x00\x00\x00", CompressionFormat.GZIP),
            (b"\x78\x01\x01\x00\x00\xff", CompressionFormat.DEFLATE),
            (b"\x78\x9c\x03\x00\x00\x00", CompressionFormat.ZLIB),
            (b"\xfd\x37\x7a\x58\x5a\x00", CompressionFormat.XZ),
            (b"\x5d\x00\x00\x80\x00\x00", CompressionFormat.LZMA),
        ],
    )
    def test_signatures(self, prefix, expected):
        """Test each magic number."""
        assert detect_format(prefix) == (expected, DetectionMethod.SIGNATURE)

    def test_short_prefix_matches(self):
        """Test matching on fewer than six bytes."""
        assert detect_format(b"\x1f\x8b")[0] == CompressionFormat.GZIP

    def test_partial_xz_magic_is_not_xz(self):
        """Test that a truncated signature does not match."""
        assert detect_format(b"\xfd\x37\x7a\x58\x5a")[0] == CompressionFormat.NONE

    def test_plain_text_passes_through(self):
        """Test the pass-through fallback."""
        assert detect_format(b"hello!") == (CompressionFormat.NONE, DetectionMethod.FALLBACK)

    def test_empty_prefix(self):
        """Test classification of empty input."""
        assert detect_format(b"")[0] == CompressionFormat.NONE

    @pytest.mark.parametrize("hint", ["brotli", "Brotli", " BROTLI "])
    def test_brotli_hint(self, hint):
        """Test that the brotli hint is matched case-insensitively."""
        assert detect_format(b"\x8b\x02\x80", hint) == (
            CompressionFormat.BROTLI,
            DetectionMethod.HINT,
        )

    def test_signature_beats_hint(self):
        """Test that a matching signature ignores the hint."""
        assert detect_format(b"\x1f\x8b\x08", "brotli")[0] == CompressionFormat.GZIP

    @pytest.mark.parametrize("hint", ["gzip", "zstd", "unknown", "nonsense", ""])
    def test_other_hints_fall_back(self, hint):
        """Test that only formats without magic bytes are hint-selectable."""
        assert detect_format(b"plain text", hint)[0] == CompressionFormat.NONE


class TestSniff:
    """Tests for reading and classifying a prefix."""

    def test_single_read(self):
        """Test that sniffing makes exactly one read call."""
        source = CountingSource(b"\x1f\x8b\x08" + b"x" * 100)
        sniff(source)
        assert source.reads == 1

    def test_bounded_read(self):
        """Test that at most SNIFF_SIZE bytes are consumed."""
        source = io.BytesIO(b"a" * 100)
        result = sniff(source)
        assert result.consumed == b"a" * SNIFF_SIZE
        assert source.tell() == SNIFF_SIZE

    def test_short_read_still_matches(self):
        """Test classification on a short first read."""
        source = TrickleSource(b"\x1f\x8b\x08\x00", step=2)
        result = sniff(source)
        assert result.consumed == b"\x1f\x8b"
        assert result.format == CompressionFormat.GZIP

    def test_empty_input(self):
        """Test sniffing an empty stream."""
        result = sniff(io.BytesIO(b""))
        assert result.consumed == b""
        assert result.format == CompressionFormat.NONE
        assert result.method == DetectionMethod.FALLBACK

    def test_input_shorter_than_window(self):
        """Test inputs shorter than six bytes."""
        result = sniff(io.BytesIO(b"\x78\x9c"))
        assert result.format == CompressionFormat.ZLIB
        assert result.consumed == b"\x78\x9c"

    def test_custom_size(self):
        """Test a smaller sniff window."""
        result = sniff(io.BytesIO(b"\x1f\x8b\x08\x00"), size=2)
        assert result.consumed == b"\x1f\x8b"


class TestReplayReader:
    """Tests for stream reconstruction."""

    @pytest.mark.parametrize(
        "data",
        [b"", b"\x1f", b"\x78\x9c", b"abcdef", b"abcdefg", bytes(range(256)) * 40],
        ids=["empty", "one", "two", "window", "window+1", "large"],
    )
    def test_transparent(self, data):
        """Test that sniff followed by reconstruct yields the original bytes."""
        source = io.BytesIO(data)
        stream = reconstruct(sniff(source), source)
        assert stream.read() == data

    @pytest.mark.parametrize("size", [1, 2, 5, 7, 100])
    def test_sized_reads(self, size):
        """Test reads of any size across the prefix boundary."""
        data = bytes(range(200))
        source = io.BytesIO(data)
        stream = reconstruct(sniff(source), source)
        out = b""
        while True:
            chunk = stream.read(size)
            if not chunk:
                break
            assert len(chunk) <= size
            out += chunk
        assert out == data

    def test_readinto(self):
        """Test reading into a caller buffer."""
        data = b"0123456789" * 10
        source = io.BytesIO(data[4:])
        stream = ReplayReader(data[:4], source)
        buffer = bytearray(8)
        out = bytearray()
        while True:
            n = stream.readinto(buffer)
            if n == 0:
                break
            out += buffer[:n]
        assert bytes(out) == data

    def test_read1(self):
        """Test single-call reads."""
        stream = ReplayReader(b"head", io.BytesIO(b"tail"))
        assert stream.read1(2) == b"he"
        assert stream.read1() == b"ad"
        assert stream.read1() == b"tail"
        assert stream.read1() == b""

    def test_source_without_readinto(self):
        """Test readinto on a source only offering read."""
        stream = ReplayReader(b"ab", TrickleSource(b"cdef", step=3))
        buffer = bytearray(10)
        assert stream.readinto(buffer) == 2
        assert stream.readinto(buffer) == 3
        assert bytes(buffer[:3]) == b"cde"

    def test_pending_prefix(self):
        """Test the replay counter."""
        stream = ReplayReader(b"head", io.BytesIO(b""))
        stream.read(3)
        assert stream.pending_prefix == 1

    def test_close_leaves_source_open(self):
        """Test that closing the reader does not close the source."""
        source = io.BytesIO(b"data")
        with ReplayReader(b"", source) as stream:
            assert stream.readable()
        assert stream.closed
        assert not source.closed
        with pytest.raises(ValueError):
            stream.read()

"""Format sniffing and stream reconstruction.

The sniffer performs one bounded read of at most ``SNIFF_SIZE`` bytes and
classifies the stream from that prefix. Because the bytes have already
been consumed from a non-rewindable source, ``ReplayReader`` serves them
again ahead of the live source so downstream readers see the stream as if
it had never been touched.

Example:
    >>> result = sniff(sys.stdin.buffer, hint="unknown")
    >>> stream = reconstruct(result, sys.stdin.buffer)
    >>> result.format
    <CompressionFormat.GZIP: 'gzip'>
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterable, Iterator

from recompress.codecs.base import CompressionFormat
from recompress.config import DEFAULT_HINT, normalize_hint

SNIFF_SIZE = 6


# =============================================================================
# Signature Table
# =============================================================================


@dataclass(frozen=True)
class Signature:
    """Magic bytes identifying a format."""

    magic: bytes
    format: CompressionFormat

    def matches(self, prefix: bytes) -> bool:
        return prefix.startswith(self.magic)


class SignatureTable:
    """Ordered signature table. The first matching signature wins."""

    def __init__(self, signatures: Iterable[tuple[bytes, CompressionFormat]]) -> None:
        self._signatures = tuple(Signature(magic, fmt) for magic, fmt in signatures)
        if any(not sig.magic for sig in self._signatures):
            raise ValueError("Signatures must not be empty")

    def match(self, prefix: bytes) -> CompressionFormat | None:
        """Get the format of the first signature ``prefix`` starts with."""
        for signature in self._signatures:
            if signature.matches(prefix):
                return signature.format
        return None

    @property
    def max_length(self) -> int:
        return max((len(sig.magic) for sig in self._signatures), default=0)

    def __iter__(self) -> Iterator[Signature]:
        return iter(self._signatures)

    def __len__(self) -> int:
        return len(self._signatures)


DEFAULT_SIGNATURES = SignatureTable(
    [
        (b"\x28\xb5\x2f\xfd", CompressionFormat.ZSTD),
        (b"\x1f\x8b", CompressionFormat.GZIP),
        (b"\x78\x01", CompressionFormat.DEFLATE),
        (b"\x78\x9c", CompressionFormat.ZLIB),
        (b"\xfd\x37\x7a\x58\x5a\x00", CompressionFormat.XZ),
        (b"\x5d\x00", CompressionFormat.LZMA),
    ]
)

# Formats without magic bytes that a hint may select.
HINT_ONLY_FORMATS = frozenset({CompressionFormat.BROTLI})


# =============================================================================
# Sniffing
# =============================================================================


class DetectionMethod(str, Enum):
    """How the input format was decided."""

    SIGNATURE = "signature"
    HINT = "hint"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class SniffResult:
    """Outcome of sniffing a stream.

    Attributes:
        format: Detected input format.
        consumed: Exact bytes read from the source while sniffing. They
            must be replayed once, ahead of the rest of the source.
        method: Whether the format came from a signature, the hint, or
            the pass-through fallback.
    """

    format: CompressionFormat
    consumed: bytes
    method: DetectionMethod = DetectionMethod.SIGNATURE


def detect_format(
    prefix: bytes,
    hint: str = DEFAULT_HINT,
    table: SignatureTable = DEFAULT_SIGNATURES,
) -> tuple[CompressionFormat, DetectionMethod]:
    """Classify a stream prefix.

    Signatures are tried in table order. When none matches, a hint naming
    a format without magic bytes (brotli) selects that format; anything
    else falls back to ``none``.
    """
    matched = table.match(prefix)
    if matched is not None:
        return matched, DetectionMethod.SIGNATURE
    for fmt in HINT_ONLY_FORMATS:
        if normalize_hint(hint) == fmt.value:
            return fmt, DetectionMethod.HINT
    return CompressionFormat.NONE, DetectionMethod.FALLBACK


def sniff(
    source: BinaryIO,
    hint: str = DEFAULT_HINT,
    *,
    size: int = SNIFF_SIZE,
    table: SignatureTable = DEFAULT_SIGNATURES,
) -> SniffResult:
    """Read a bounded prefix from ``source`` and classify it.

    Exactly one read call is made. It may return fewer than ``size`` bytes
    (short or slow input); matching is attempted on whatever arrived.
    ``read1`` is preferred where available so a buffered source returns as
    soon as any data is ready instead of waiting for ``size`` bytes.

    Args:
        source: Readable binary stream.
        hint: Format hint used when no signature matches.
        size: Maximum number of bytes to read.
        table: Signature table to match against.

    Returns:
        The detected format and the consumed bytes.
    """
    read = getattr(source, "read1", None) or source.read
    prefix = read(size) or b""
    fmt, method = detect_format(bytes(prefix[:size]), hint, table)
    return SniffResult(format=fmt, consumed=bytes(prefix), method=method)


# =============================================================================
# Stream Reconstruction
# =============================================================================


class ReplayReader:
    """Reader yielding a consumed prefix followed by the rest of a source.

    Only the prefix is held in memory; once it is exhausted every read is
    delegated to the live source.

    Example:
        >>> source = io.BytesIO(b"hello world")
        >>> head = source.read(5)
        >>> ReplayReader(head, source).read()
        b'hello world'
    """

    def __init__(self, prefix: bytes, source: BinaryIO) -> None:
        self._prefix = memoryview(bytes(prefix))
        self._source = source
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_prefix(self) -> int:
        """Number of replayed bytes not read yet."""
        return len(self._prefix)

    def readable(self) -> bool:
        return True

    def _take(self, size: int) -> bytes:
        head = bytes(self._prefix[:size])
        self._prefix = self._prefix[size:]
        return head

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes (-1 or None for everything)."""
        self._check_open()
        if size is None or size < 0:
            head = self._take(len(self._prefix))
            return head + (self._source.read() or b"")
        if size == 0:
            return b""
        if self._prefix:
            return self._take(size)
        return self._source.read(size) or b""

    def read1(self, size: int = -1) -> bytes:
        """Read with at most one call into the underlying source."""
        self._check_open()
        if self._prefix:
            return self._take(len(self._prefix) if size < 0 else size)
        read1 = getattr(self._source, "read1", None)
        if read1 is not None:
            return read1(size) or b""
        return self._source.read(size) or b""

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read into a caller-owned buffer."""
        self._check_open()
        view = memoryview(buffer)
        if self._prefix:
            n = min(len(view), len(self._prefix))
            view[:n] = self._prefix[:n]
            self._prefix = self._prefix[n:]
            return n
        readinto = getattr(self._source, "readinto", None)
        if readinto is not None:
            return readinto(view) or 0
        data = self._source.read(len(view)) or b""
        view[: len(data)] = data
        return len(data)

    def close(self) -> None:
        """Release the replay buffer. The source itself is left open."""
        self._closed = True
        self._prefix = memoryview(b"")

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed reader")

    def __enter__(self) -> "ReplayReader":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def reconstruct(result: SniffResult, source: BinaryIO) -> ReplayReader:
    """Put the sniffed bytes back in front of the remaining source."""
    return ReplayReader(result.consumed, source)

"""Transcoding engine.

Pairs one decoder with one encoder and drains the former into the latter
through a single reusable buffer, so memory use does not grow with the
size of the stream.

Example:
    >>> from recompress import TranscodeConfig, transcode
    >>> config = TranscodeConfig(output_type="zstd")
    >>> result = transcode(sys.stdin.buffer, sys.stdout.buffer, config)
    >>> result.input_format, result.output_format
    (<CompressionFormat.GZIP: 'gzip'>, <CompressionFormat.ZSTD: 'zstd'>)
"""

from __future__ import annotations

import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any, BinaryIO

from recompress.codecs.base import CompressionFormat
from recompress.codecs.providers import get_decoder, get_encoder
from recompress.config import TranscodeConfig, is_recognized_hint
from recompress.observability.logging import get_logger
from recompress.sniffing import (
    DEFAULT_SIGNATURES,
    DetectionMethod,
    SignatureTable,
    reconstruct,
    sniff,
)
from recompress.watchdog import StallWatchdog

logger = get_logger(__name__)


# =============================================================================
# Metrics
# =============================================================================


@dataclass
class TranscodeMetrics:
    """Metrics for one transcoding run.

    Attributes:
        bytes_in: Bytes read from the input stream (compressed side).
        bytes_decoded: Uncompressed bytes passed from decoder to encoder.
        bytes_out: Bytes written to the output stream.
        chunks_processed: Number of buffer-sized copies performed.
        start_time: Start time of the copy.
        end_time: End time of the copy.
    """

    bytes_in: int = 0
    bytes_decoded: int = 0
    bytes_out: int = 0
    chunks_processed: int = 0
    start_time: float = 0.0
    end_time: float = 0.0

    @property
    def compression_ratio(self) -> float:
        """Ratio of uncompressed to output size."""
        if self.bytes_out == 0:
            return 0.0
        return self.bytes_decoded / self.bytes_out

    @property
    def duration_ms(self) -> float:
        """Get duration in milliseconds."""
        if self.end_time > self.start_time:
            return (self.end_time - self.start_time) * 1000
        return 0.0

    @property
    def throughput_mbps(self) -> float:
        """Get uncompressed throughput in MB/s."""
        duration_s = self.duration_ms / 1000
        if duration_s > 0:
            return (self.bytes_decoded / 1024 / 1024) / duration_s
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "bytes_in": self.bytes_in,
            "bytes_decoded": self.bytes_decoded,
            "bytes_out": self.bytes_out,
            "chunks_processed": self.chunks_processed,
            "compression_ratio": round(self.compression_ratio, 2),
            "duration_ms": round(self.duration_ms, 2),
            "throughput_mbps": round(self.throughput_mbps, 2),
        }


@dataclass
class TranscodeResult:
    """Outcome of a transcoding run."""

    input_format: CompressionFormat
    output_format: CompressionFormat
    detected_by: DetectionMethod = DetectionMethod.SIGNATURE
    metrics: TranscodeMetrics = field(default_factory=TranscodeMetrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_format": self.input_format.value,
            "output_format": self.output_format.value,
            "detected_by": self.detected_by.value,
            **self.metrics.to_dict(),
        }


# =============================================================================
# Engine
# =============================================================================


class Transcoder:
    """Drains one decoder into one encoder.

    The decoder and encoder are built once in ``run``; after that the copy
    loop is identical for every pair of formats. Failures propagate
    unchanged and are never retried: the input cannot be rewound.

    Args:
        source: Readable input, positioned at the start of the compressed
            stream (usually a ``ReplayReader``).
        sink: Writable output.
        input_format: Format to decode.
        config: Run configuration; ``output_type`` selects the encoder.
    """

    def __init__(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        input_format: CompressionFormat,
        config: TranscodeConfig,
    ) -> None:
        self._source = source
        self._sink = sink
        self.input_format = input_format
        self.config = config
        self._metrics = TranscodeMetrics()

    @property
    def output_format(self) -> CompressionFormat:
        return self.config.output_type

    @property
    def metrics(self) -> TranscodeMetrics:
        return self._metrics

    def run(self) -> TranscodeMetrics:
        """Perform the single decode pass and single encode pass.

        Returns:
            Metrics of the run.

        Raises:
            DecodingError: If the input is malformed or truncated.
            EncodingError: If compressing or writing the output fails.
        """
        chunk_size = self.config.chunk_size
        buffer = bytearray(chunk_size)
        view = memoryview(buffer)
        metrics = self._metrics
        metrics.start_time = time.time()
        decoder = encoder = None

        try:
            with ExitStack() as stack:
                decoder = stack.enter_context(
                    get_decoder(self.input_format, self._source, chunk_size=chunk_size)
                )
                encoder = stack.enter_context(
                    get_encoder(
                        self.output_format,
                        self._sink,
                        level=self.config.level,
                        chunk_size=chunk_size,
                    )
                )
                while True:
                    n = decoder.readinto(buffer)
                    if n == 0:
                        break
                    encoder.write(view[:n])
                    metrics.chunks_processed += 1
                encoder.finalize()
        finally:
            metrics.end_time = time.time()
            if decoder is not None:
                metrics.bytes_in = decoder.bytes_consumed
                metrics.bytes_decoded = decoder.bytes_decoded
            if encoder is not None:
                metrics.bytes_out = encoder.bytes_out

        return metrics


def transcode(
    source: BinaryIO,
    sink: BinaryIO,
    config: TranscodeConfig | None = None,
    *,
    watchdog: StallWatchdog | None = None,
    table: SignatureTable = DEFAULT_SIGNATURES,
) -> TranscodeResult:
    """Sniff, reconstruct and transcode ``source`` into ``sink``.

    Args:
        source: Readable binary input.
        sink: Writable binary output.
        config: Run configuration (defaults to pass-through).
        watchdog: Optional stall watchdog guarding the initial read.
        table: Signature table used for sniffing.

    Returns:
        Formats involved and metrics of the run.
    """
    config = config or TranscodeConfig()
    log = logger.bind(output_format=config.output_type.value)

    if not is_recognized_hint(config.hint):
        log.warning("Unrecognized format hint, ignoring it", hint=config.hint)

    if watchdog is not None:
        with watchdog.guard():
            sniffed = sniff(source, config.hint, table=table)
    else:
        sniffed = sniff(source, config.hint, table=table)

    if not config.quiet:
        log.info(
            "Detected input format",
            input_format=sniffed.format.value,
            detected_by=sniffed.method.value,
            sniffed_bytes=len(sniffed.consumed),
        )

    input_format = sniffed.format
    if not sniffed.consumed and input_format != CompressionFormat.NONE:
        # Nothing arrived, so there is no compressed stream to decode.
        log.debug("Empty input, skipping decoder", hinted_format=input_format.value)
        input_format = CompressionFormat.NONE

    stream = reconstruct(sniffed, source)
    transcoder = Transcoder(stream, sink, input_format, config)
    with stream:
        metrics = transcoder.run()

    result = TranscodeResult(
        input_format=input_format,
        output_format=config.output_type,
        detected_by=sniffed.method,
        metrics=metrics,
    )
    if not config.quiet:
        log.info("Transcoding complete", **metrics.to_dict())
    return result

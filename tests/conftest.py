"""Shared fixtures for recompress tests."""

import io
import random

import pytest

from recompress.codecs import CompressionFormat, get_encoder, is_format_available


def _compress(fmt, data, **kwargs):
    sink = io.BytesIO()
    with get_encoder(fmt, sink, **kwargs) as encoder:
        encoder.write(data)
    return sink.getvalue()


def _require(fmt):
    if not is_format_available(fmt):
        pytest.skip(f"{fmt.value} codec library not installed")


@pytest.fixture
def compress():
    """Compress bytes with the encoder for a format."""
    return _compress


@pytest.fixture
def require_format():
    """Skip the calling test when a codec library is missing."""
    return _require


@pytest.fixture
def text_payload():
    """Highly compressible text larger than several copy buffers."""
    return b"The quick brown fox jumps over the lazy dog. " * 8000


@pytest.fixture
def random_payload():
    """Incompressible payload."""
    rng = random.Random(1234)
    return bytes(rng.getrandbits(8) for _ in range(50_000))


@pytest.fixture(params=list(CompressionFormat), ids=lambda f: f.value)
def any_format(request):
    """Every format, skipping those whose library is not installed."""
    _require(request.param)
    return request.param


@pytest.fixture(params=list(CompressionFormat), ids=lambda f: f.value)
def other_format(request):
    """Second format axis for pairwise tests."""
    _require(request.param)
    return request.param

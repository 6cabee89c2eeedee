"""Pytest configuration and fixtures."""

import httpx
import numpy as np
import pytest

from truelens.alerts import AlertRecorder
from truelens.blobs import BlobRegistry
from truelens.downloads import DownloadManager
from truelens.kv_store import MemoryStore


@pytest.fixture
def blobs():
    return BlobRegistry()


@pytest.fixture
def downloads(tmp_path, blobs):
    return DownloadManager(tmp_path / "downloads", blobs)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def alerts():
    return AlertRecorder()


@pytest.fixture
def make_client():
    """Factory for an httpx.AsyncClient answering with `handler`."""

    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def bgr_frame():
    """Deterministic 64x48 BGR frame."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, (48, 64, 3), dtype=np.uint8)


@pytest.fixture
def undecodable_response():
    """Factory for a response claiming gzip encoding over a plain body."""

    def _make(status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code,
            headers={"Content-Encoding": "gzip"},
            stream=httpx.ByteStream(b"not gzip data"),
        )

    return _make

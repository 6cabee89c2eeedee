# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Tests for frame capture, hashing and PNG packaging.
"""

import hashlib

import numpy as np
import pytest

import truelens.frame_digest as frame_digest
from truelens.errors import CaptureFailed
from truelens.frame_digest import (
    FrameDigestEngine,
    capture_file_name,
    decode_png_pixels,
    verify_capture,
    verify_encoded_file,
)
from truelens.hashing import hash_raw_pixels, verify_hash_format


def fixed_clock(seconds: float = 1704067200.0):
    return lambda: seconds


def test_hash_is_deterministic(bgr_frame):
    """Test the same pixels always hash to the same digest."""
    engine = FrameDigestEngine()
    first = engine.capture(bgr_frame)
    second = engine.capture(bgr_frame.copy())

    assert first.content_hash == second.content_hash
    assert hash_raw_pixels(first.raw_pixels) == hash_raw_pixels(first.raw_pixels)


def test_content_hash_binds_raw_pixels(bgr_frame):
    """Test recomputing the digest over raw_pixels matches content_hash."""
    image = FrameDigestEngine().capture(bgr_frame)

    assert verify_hash_format(image.content_hash)
    assert hashlib.sha256(image.raw_pixels).hexdigest() == image.content_hash
    assert verify_capture(image) is True


def test_encoded_png_embeds_hashed_pixels(bgr_frame):
    """Test the transmitted PNG decodes to exactly the hashed pixel grid."""
    image = FrameDigestEngine().capture(bgr_frame)

    assert image.encoded_file.mime_type == "image/png"
    assert image.encoded_file.data.startswith(b"\x89PNG")
    assert decode_png_pixels(image.encoded_file.data) == image.raw_pixels
    assert verify_encoded_file(image) is True


def test_raw_pixels_are_rgba():
    """Test BGR frames are read back as RGBA, one byte per channel."""
    frame = np.zeros((2, 3, 3), dtype=np.uint8)
    frame[:, :] = (255, 0, 0)  # Pure blue in BGR

    image = FrameDigestEngine().capture(frame)

    assert len(image.raw_pixels) == 2 * 3 * 4
    assert image.raw_pixels[:4] == bytes([0, 0, 255, 255])
    assert (image.width, image.height) == (3, 2)


def test_grayscale_and_bgra_frames():
    """Test other channel layouts are accepted."""
    engine = FrameDigestEngine()

    gray = np.full((4, 4), 7, dtype=np.uint8)
    assert engine.capture(gray).raw_pixels[:4] == bytes([7, 7, 7, 255])

    bgra = np.zeros((4, 4, 4), dtype=np.uint8)
    bgra[:, :] = (1, 2, 3, 4)
    assert engine.capture(bgra).raw_pixels[:4] == bytes([3, 2, 1, 4])


def test_tampered_pixels_fail_verification(bgr_frame):
    """Test a modified pixel buffer no longer matches its hash."""
    image = FrameDigestEngine().capture(bgr_frame)
    tampered = bytearray(image.raw_pixels)
    tampered[0] ^= 0xFF

    assert hash_raw_pixels(bytes(tampered)) != image.content_hash


def test_raster_reused_but_pixels_not_aliased():
    """Test the raster is shared across captures while pixel buffers are independent."""
    engine = FrameDigestEngine()
    black = np.zeros((8, 8, 3), dtype=np.uint8)
    white = np.full((8, 8, 3), 255, dtype=np.uint8)

    first = engine.capture(black)
    raster = engine.raster
    second = engine.capture(white)

    assert engine.raster is raster
    assert first.raw_pixels[:3] == b"\x00\x00\x00"
    assert second.raw_pixels[:3] == b"\xff\xff\xff"
    assert verify_capture(first) and verify_capture(second)


def test_raster_reallocated_on_resize():
    """Test a new frame size gets a raster of the new size."""
    engine = FrameDigestEngine()
    engine.capture(np.zeros((8, 8, 3), dtype=np.uint8))
    engine.capture(np.zeros((10, 20, 3), dtype=np.uint8))

    assert engine.raster.shape == (10, 20, 4)


def test_file_name_derived_from_timestamp(bgr_frame):
    """Test file name is prefix + epoch milliseconds + extension."""
    engine = FrameDigestEngine(clock=fixed_clock())
    image = engine.capture(bgr_frame)

    assert image.id == 1704067200000
    assert image.file_name == "TL-AUTH-1704067200000.png"
    assert image.encoded_file.name == image.file_name
    assert image.encoded_file.last_modified == image.id
    assert capture_file_name(42) == "TL-AUTH-42.png"


def test_ids_unique_within_session(bgr_frame):
    """Test captures in the same millisecond still get distinct, increasing ids."""
    engine = FrameDigestEngine(clock=fixed_clock())
    ids = [engine.capture(bgr_frame).id for _ in range(3)]

    assert ids == [1704067200000, 1704067200001, 1704067200002]


def test_display_url_registered(blobs, bgr_frame):
    """Test preview URL points at the encoded PNG."""
    image = FrameDigestEngine(blobs).capture(bgr_frame)

    assert image.display_url in blobs
    assert blobs.resolve(image.display_url).data == image.encoded_file.data


@pytest.mark.parametrize("frame", [None, np.zeros((0, 0, 3), dtype=np.uint8)])
def test_no_frame_returns_none(frame, blobs):
    """Test 'not ready yet' produces no capture and no error."""
    assert FrameDigestEngine(blobs).capture(frame) is None
    assert len(blobs) == 0


def test_unsupported_frame_raises_capture_failed():
    """Test draw failure surfaces as CaptureFailed."""
    engine = FrameDigestEngine()

    with pytest.raises(CaptureFailed):
        engine.capture(np.zeros((4, 4, 3), dtype=np.float32))

    with pytest.raises(CaptureFailed):
        engine.capture(np.zeros((4, 4, 2), dtype=np.uint8))


def test_encode_failure_raises_capture_failed(monkeypatch, blobs, bgr_frame):
    """Test encode failure surfaces as CaptureFailed and leaves no preview behind."""
    def broken_encode(raster):
        raise OSError("encoder crashed")

    monkeypatch.setattr(frame_digest, "encode_png", broken_encode)

    with pytest.raises(CaptureFailed) as exc_info:
        FrameDigestEngine(blobs).capture(bgr_frame)

    assert isinstance(exc_info.value.__cause__, OSError)
    assert len(blobs) == 0

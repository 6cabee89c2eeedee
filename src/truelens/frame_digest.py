# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Frame capture, hashing and packaging.

Turns one live frame into a CapturedImage:

1. Draw the frame into an off-screen RGBA raster
2. Read back the raw pixel buffer
3. SHA-256 over the raw pixel bytes (before any encoding)
4. Encode the same raster as PNG (lossless)
5. Derive the file name from the capture timestamp
"""

import io
import logging
import time
from datetime import datetime
from typing import Callable, Optional

import cv2
import numpy as np
from PIL import Image

from .blobs import BlobRegistry
from .errors import CaptureFailed
from .hashing import constant_time_compare, hash_raw_pixels
from .models import CapturedImage, EncodedFile

logger = logging.getLogger(__name__)

FILE_PREFIX = "TL-AUTH-"
FILE_EXTENSION = ".png"
PNG_MIME_TYPE = "image/png"

_CONVERSIONS = {
    1: cv2.COLOR_GRAY2RGBA,
    3: cv2.COLOR_BGR2RGBA,
    4: cv2.COLOR_BGRA2RGBA,
}


def capture_file_name(capture_id: int) -> str:
    """
    File name for a capture taken at `capture_id` epoch milliseconds.

    Example:
        >>> capture_file_name(1704067200000)
        'TL-AUTH-1704067200000.png'
    """
    return f"{FILE_PREFIX}{capture_id}{FILE_EXTENSION}"


def encode_png(raster: np.ndarray) -> bytes:
    """Encode an RGBA raster (height x width x 4, uint8) as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(raster).save(buffer, format="PNG")
    return buffer.getvalue()


def decode_png_pixels(data: bytes) -> bytes:
    """Raw RGBA bytes of a PNG file."""
    with Image.open(io.BytesIO(data)) as image:
        return image.convert("RGBA").tobytes()


def verify_capture(image: CapturedImage) -> bool:
    """True if the stored hash still matches the stored raw pixels."""
    return constant_time_compare(hash_raw_pixels(image.raw_pixels), image.content_hash)


def verify_encoded_file(image: CapturedImage) -> bool:
    """True if the PNG being transmitted decodes to the hashed pixel grid."""
    return constant_time_compare(
        hash_raw_pixels(decode_png_pixels(image.encoded_file.data)),
        image.content_hash
    )


class FrameDigestEngine:
    """
    Converts live frames into hashed, packaged captures.

    The RGBA raster is reused between captures and only reallocated when the
    frame size changes. Every capture gets its own copy of the pixel bytes.
    """

    def __init__(
        self,
        blobs: Optional[BlobRegistry] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the engine.

        Args:
            blobs: Registry for preview URLs (a private one is created if None)
            clock: Wall clock returning epoch seconds
        """
        self.blobs = blobs if blobs is not None else BlobRegistry()
        self._clock = clock
        self._raster: Optional[np.ndarray] = None
        self._last_id = 0

    @property
    def raster(self) -> Optional[np.ndarray]:
        return self._raster

    def _next_id(self) -> int:
        capture_id = max(int(self._clock() * 1000), self._last_id + 1)
        self._last_id = capture_id
        return capture_id

    def _draw(self, frame: np.ndarray) -> np.ndarray:
        if frame.dtype != np.uint8:
            raise ValueError(f"Unsupported frame dtype: {frame.dtype}")

        if frame.ndim not in (2, 3):
            raise ValueError(f"Unsupported frame shape: {frame.shape}")
        if frame.ndim == 3 and frame.shape[2] == 1:
            frame = np.ascontiguousarray(frame[:, :, 0])
        channels = 1 if frame.ndim == 2 else frame.shape[2]
        if channels not in _CONVERSIONS:
            raise ValueError(f"Unsupported frame shape: {frame.shape}")

        height, width = frame.shape[:2]
        if self._raster is None or self._raster.shape != (height, width, 4):
            self._raster = np.empty((height, width, 4), dtype=np.uint8)
            logger.debug(f"Raster allocated: {width}x{height}")

        np.copyto(self._raster, cv2.cvtColor(frame, _CONVERSIONS[channels]))
        return self._raster

    def capture(self, frame: Optional[np.ndarray]) -> Optional[CapturedImage]:
        """
        Capture one frame.

        Args:
            frame: Decoded frame (BGR, BGRA or grayscale uint8) or None

        Returns:
            CapturedImage, or None if no decoded frame is available yet

        Raises:
            CaptureFailed: If drawing or encoding the frame fails
        """
        if frame is None or frame.size == 0:
            return None

        capture_id = self._next_id()
        start_time = time.time()

        try:
            raster = self._draw(frame)
            raw_pixels = raster.tobytes()
            content_hash = hash_raw_pixels(raw_pixels)
            png_data = encode_png(raster)
        except (cv2.error, ValueError, TypeError, OSError) as e:
            raise CaptureFailed(f"Frame capture failed: {e}") from e

        height, width = raster.shape[:2]
        file_name = capture_file_name(capture_id)
        encoded_file = EncodedFile(
            name=file_name,
            mime_type=PNG_MIME_TYPE,
            data=png_data,
            last_modified=capture_id,
        )
        created_at = datetime.fromtimestamp(capture_id / 1000).strftime("%d/%m/%Y, %H:%M:%S")

        image = CapturedImage(
            id=capture_id,
            raw_pixels=raw_pixels,
            encoded_file=encoded_file,
            content_hash=content_hash,
            display_url=self.blobs.create_url(png_data, PNG_MIME_TYPE),
            file_name=file_name,
            created_at=created_at,
            width=width,
            height=height,
        )

        logger.info(
            f"✓ Captured {file_name}: {width}x{height}, hash {content_hash[:16]}... "
            f"in {time.time() - start_time:.3f}s"
        )
        return image

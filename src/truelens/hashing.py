# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Standardized hashing utilities for TrueLens.

All content hashes are SHA-256 over raw RGBA pixel bytes, computed before
any encoding so the fingerprint is independent of the file format.
"""

import hashlib
import hmac
import re
from typing import Union

import numpy as np

_SHA256_HEX = re.compile(r"[0-9a-fA-F]{64}")


def compute_sha256(data: bytes) -> str:
    """
    Compute SHA-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash (e.g., RGBA pixel buffer)

    Returns:
        64-character hex string (lowercase)

    Example:
        >>> len(compute_sha256(b"raw pixels"))
        64
    """
    return hashlib.sha256(data).hexdigest()


def hash_raw_pixels(pixels: Union[bytes, np.ndarray]) -> str:
    """
    Compute SHA-256 hash of a raw pixel buffer.

    Args:
        pixels: RGBA bytes or a numpy array (hashed in C order)

    Returns:
        Hex string of SHA-256 hash (64 characters)
    """
    if isinstance(pixels, np.ndarray):
        pixels = np.ascontiguousarray(pixels).tobytes()
    return compute_sha256(pixels)


def verify_hash_format(hash_string: str) -> bool:
    """True if `hash_string` is a 64-character hex SHA-256 digest."""
    return _SHA256_HEX.fullmatch(hash_string) is not None


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two hex digests without leaking timing information."""
    return hmac.compare_digest(a.lower(), b.lower())

# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Core records of the capture and verification pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class CameraDevice:
    """Descriptor of the camera behind an active media session."""
    label: str  # Hardware name reported by the first video track (may be empty)
    active: bool = True


@dataclass(frozen=True)
class EncodedFile:
    """Compressed image bytes plus the metadata sent alongside them."""
    name: str
    mime_type: str
    data: bytes = field(repr=False)
    last_modified: int  # Epoch milliseconds

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CaptureSummary:
    """Redacted capture record persisted across restarts (no pixels, no file bytes)."""
    id: int
    file_name: str
    content_hash: str
    created_at: str

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'file_name': self.file_name,
            'content_hash': self.content_hash,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CaptureSummary':
        return cls(
            id=int(data['id']),
            file_name=data['file_name'],
            content_hash=data['content_hash'],
            created_at=data['created_at'],
        )


@dataclass(frozen=True)
class CapturedImage:
    """
    One completed capture.

    `content_hash` is the SHA-256 of exactly `raw_pixels` (RGBA, one byte per
    channel). The same raster produced both, so the hash also identifies the
    pixel grid embedded in `encoded_file`.
    """
    id: int  # Epoch-millisecond capture time, strictly increasing per session
    raw_pixels: bytes = field(repr=False)
    encoded_file: EncodedFile = field(repr=False)
    content_hash: str
    display_url: str
    file_name: str
    created_at: str
    width: int = 0
    height: int = 0

    def summary(self) -> CaptureSummary:
        return CaptureSummary(
            id=self.id,
            file_name=self.file_name,
            content_hash=self.content_hash,
            created_at=self.created_at,
        )


class VerificationStatus(str, Enum):
    IDLE = "idle"
    VERIFYING = "verifying"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one successful verification attempt."""
    status: VerificationStatus
    source_device: str
    hash: str
    timestamp: str
    file_name: str
    download_url: Optional[str] = None

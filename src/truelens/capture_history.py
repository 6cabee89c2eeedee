# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Session capture history.

Keeps every capture of the current session in memory (newest first) and
persists a redacted summary of the most recent one so it survives restarts.
"""

import json
import logging
from typing import Iterator, List, Optional, Tuple

from .blobs import BlobRegistry
from .kv_store import KeyValueStore
from .models import CapturedImage, CaptureSummary

logger = logging.getLogger(__name__)

LAST_CAPTURE_KEY = "last_verified_capture"


class CaptureHistoryStore:
    """
    In-memory history plus a persisted "last capture" summary.

    Only fully attested captures are recorded; callers record after the
    attestation service has answered successfully.
    """

    def __init__(self, store: KeyValueStore, blobs: Optional[BlobRegistry] = None):
        """
        Initialize history.

        Args:
            store: Persistence for the last-capture summary
            blobs: Registry holding the captures' preview URLs (released on clear())
        """
        self.store = store
        self.blobs = blobs
        self._images: List[CapturedImage] = []

    @property
    def images(self) -> Tuple[CapturedImage, ...]:
        return tuple(self._images)

    def record(self, image: CapturedImage) -> None:
        """
        Add a capture and overwrite the persisted summary with it.

        The summary is written first; if that fails the session history is
        left unchanged and the store error propagates.
        """
        self.store.set(LAST_CAPTURE_KEY, json.dumps(image.summary().to_dict()))
        self._images.insert(0, image)
        logger.info(f"✓ Recorded {image.file_name} (session total: {len(self._images)})")

    def last_capture(self) -> Optional[CaptureSummary]:
        """Persisted summary of the most recent capture, if any."""
        raw = self.store.get(LAST_CAPTURE_KEY)
        if raw is None:
            return None

        try:
            return CaptureSummary.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading last capture summary: {e}")
            return None

    def clear(self) -> None:
        """End of session: drop in-memory captures and release their previews."""
        if self.blobs is not None:
            for image in self._images:
                self.blobs.revoke(image.display_url)
        self._images.clear()

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[CapturedImage]:
        return iter(self._images)

# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Transient local object references.

A blob URL is a short-lived handle to an in-memory payload (preview image,
signed artifact awaiting download). Whoever creates a URL is responsible for
revoking it once it is no longer needed.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob:truelens/"


@dataclass(frozen=True)
class Blob:
    data: bytes
    mime_type: str = "application/octet-stream"


class BlobRegistry:
    """Registry mapping blob URLs to payloads."""

    def __init__(self):
        self._blobs: Dict[str, Blob] = {}

    def create_url(self, data: bytes, mime_type: str = "application/octet-stream") -> str:
        url = f"{BLOB_SCHEME}{uuid.uuid4()}"
        self._blobs[url] = Blob(data=bytes(data), mime_type=mime_type)
        return url

    def resolve(self, url: str) -> Blob:
        """
        Look up a live blob.

        Raises:
            KeyError: If the URL was never created or has been revoked
        """
        try:
            return self._blobs[url]
        except KeyError:
            raise KeyError(f"Blob URL not found or revoked: {url}") from None

    def revoke(self, url: str) -> None:
        """Release a blob. Revoking an unknown URL is a no-op."""
        if self._blobs.pop(url, None) is not None:
            logger.debug(f"Revoked {url}")

    def __contains__(self, url: str) -> bool:
        return url in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

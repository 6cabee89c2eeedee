# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Attestation service client for submitting captures.

Handles HTTP communication with the TrueLens attestation endpoint. A
successful submission answers with the signed artifact's raw bytes, which
are downloaded as `signed_<file name>`.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from . import __version__
from .downloads import DownloadManager
from .errors import AttestationRejected, NetworkUnreachable
from .models import EncodedFile
from .slug import convert_to_slug

logger = logging.getLogger(__name__)

NETWORK_UNREACHABLE_MESSAGE = "Authentication server unreachable. Please check your connection."
SIGNED_PREFIX = "signed_"


@dataclass(frozen=True)
class SignedArtifact:
    """Signed counterpart of a capture, saved to the download directory."""
    file_name: str
    path: Path
    size: int


def signed_file_name(file_name: str) -> str:
    return f"{SIGNED_PREFIX}{file_name}"


class AttestationClient:
    """
    HTTP client for the attestation upload endpoint.

    Each call to submit() performs exactly one request. Retrying a failed
    submission means taking a new capture.
    """

    def __init__(
        self,
        upload_url: str,
        downloads: DownloadManager,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize attestation client.

        Args:
            upload_url: Full URL of the upload endpoint
            downloads: Where signed artifacts are saved
            client: Shared HTTP client (one is created and owned if None)
            timeout: Request timeout in seconds for an owned client
        """
        self.upload_url = upload_url
        self.downloads = downloads
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={'User-Agent': f'TrueLens-Capture/{__version__}'},
        )

    async def submit(self, encoded_file: EncodedFile, device_label: str) -> SignedArtifact:
        """
        Submit one packaged capture and download its signed counterpart.

        Args:
            encoded_file: PNG produced by the frame digest engine
            device_label: Hardware label of the capturing camera (slugified on the wire)

        Returns:
            SignedArtifact describing the downloaded file

        Raises:
            AttestationRejected: Non-success status or empty signed body
            NetworkUnreachable: Transport failure
        """
        files = {'media': (encoded_file.name, encoded_file.data, encoded_file.mime_type)}
        data = {'device-id': convert_to_slug(device_label)}

        logger.info(f"📤 Submitting {encoded_file.name} ({encoded_file.size} bytes) as {data['device-id']}")

        try:
            response = await self._client.post(self.upload_url, files=files, data=data)
        except httpx.RequestError as e:
            logger.error(f"✗ Cannot reach attestation service at {self.upload_url}: {e}")
            raise NetworkUnreachable(NETWORK_UNREACHABLE_MESSAGE) from e

        if not response.is_success:
            body = response.text.strip()
            logger.error(f"✗ Submission rejected: {response.status_code} {body}")
            raise AttestationRejected(
                body or f"Server Error: {response.status_code}",
                status_code=response.status_code
            )

        signed_bytes = response.content
        if not signed_bytes:
            raise AttestationRejected(
                "Attestation service returned an empty signed artifact",
                status_code=response.status_code
            )

        name = signed_file_name(encoded_file.name)
        content_type = response.headers.get('content-type', encoded_file.mime_type)

        blobs = self.downloads.blobs
        url = blobs.create_url(signed_bytes, content_type)
        try:
            path = self.downloads.download(url, name)
        finally:
            blobs.revoke(url)

        logger.info(f"✓ Signed artifact received: {name}")
        return SignedArtifact(file_name=name, path=path, size=len(signed_bytes))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'AttestationClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Verification of arbitrary files against the attestation service.

Lifecycle of one attempt:

    idle --authenticate--> verifying --> success | error --reset--> idle

A file can only be selected while idle, and only one verification can be in
flight at a time.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from .attestation_client import NETWORK_UNREACHABLE_MESSAGE
from .errors import NetworkUnreachable, VerificationRejected
from .hashing import verify_hash_format
from .models import VerificationResult, VerificationStatus

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DEVICE = "TRUE-LENS-001"
DEFAULT_HASH = "8f3e...b2a1"
UNVERIFIED_MESSAGE = "The hardware signature could not be verified for this media."
MISSING_HASH_MESSAGE = "Verification response did not include a valid content hash."
CANCELLED_MESSAGE = "Verification cancelled."

_TRANSITIONS = {
    VerificationStatus.IDLE: {VerificationStatus.VERIFYING},
    VerificationStatus.VERIFYING: {VerificationStatus.SUCCESS, VerificationStatus.ERROR},
    VerificationStatus.SUCCESS: {VerificationStatus.IDLE},
    VerificationStatus.ERROR: {VerificationStatus.IDLE},
}


@dataclass(frozen=True)
class SelectedFile:
    """A file chosen by the user for verification."""
    name: str
    data: bytes = field(repr=False)
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> 'SelectedFile':
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            data=path.read_bytes(),
            mime_type=mime_type or "application/octet-stream",
        )


class VerifyResponse(BaseModel):
    """Payload of the verification endpoint."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    success: Optional[StrictBool] = None
    error: Optional[str] = None
    download_url: Optional[str] = None
    source_device: Optional[str] = None
    hash: Optional[str] = None
    timestamp: Optional[str] = None
    file_name: Optional[str] = None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class VerificationStateMachine:
    """
    Governs a single verification attempt at a time.

    The status doubles as the mutual-exclusion marker: while verifying, file
    selection is refused and further authenticate() calls are no-ops.
    """

    def __init__(
        self,
        verify_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        strict_hash: bool = False
    ):
        """
        Initialize the state machine.

        Args:
            verify_url: Full URL of the verification endpoint
            client: Shared HTTP client (one is created and owned if None)
            timeout: Request timeout in seconds for an owned client
            strict_hash: Treat a success response without a well-formed SHA-256 hash as a failure
        """
        self.verify_url = verify_url
        self.strict_hash = strict_hash
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

        self.status = VerificationStatus.IDLE
        self.selected_file: Optional[SelectedFile] = None
        self.result: Optional[VerificationResult] = None
        self.error_message: Optional[str] = None

        self.submissions = 0
        self.transitions: List[Tuple[VerificationStatus, VerificationStatus]] = []

    @property
    def can_select(self) -> bool:
        return self.status is VerificationStatus.IDLE

    @property
    def can_authenticate(self) -> bool:
        return self.status is VerificationStatus.IDLE and self.selected_file is not None

    def _transition(self, new_status: VerificationStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise RuntimeError(f"Illegal verification transition: {self.status.value} -> {new_status.value}")
        self.transitions.append((self.status, new_status))
        logger.debug(f"Verification: {self.status.value} -> {new_status.value}")
        self.status = new_status

    def select_file(self, file: SelectedFile) -> bool:
        """
        Select the file to verify, clearing any stale result.

        Only allowed while idle. After a success or error the caller must
        reset() before choosing another file.

        Returns:
            False if selection is not allowed in the current state
        """
        if not self.can_select:
            logger.warning(f"⚠ File selection ignored while {self.status.value}")
            return False

        self.selected_file = file
        self.result = None
        self.error_message = None
        logger.info(f"Selected {file.name} ({file.size / 1024 / 1024:.2f} MB)")
        return True

    def reset(self) -> None:
        """Return to idle after success or error. Keeps the selected file."""
        if self.status not in (VerificationStatus.SUCCESS, VerificationStatus.ERROR):
            return
        self._transition(VerificationStatus.IDLE)
        self.result = None
        self.error_message = None

    async def authenticate(self) -> VerificationStatus:
        """
        Verify the selected file.

        Does nothing unless idle with a file selected. Rejections and
        network failures end in the error state without raising. Anything
        else also ends in the error state, then propagates.

        Returns:
            Status after the attempt
        """
        if not self.can_authenticate:
            logger.debug(f"Authenticate ignored (status={self.status.value})")
            return self.status

        self._transition(VerificationStatus.VERIFYING)
        self.result = None
        self.error_message = None
        file = self.selected_file

        try:
            result = await self._submit(file)
        except (VerificationRejected, NetworkUnreachable) as e:
            logger.info(f"   ❌ NOT VERIFIED - {e.message}")
            self.error_message = e.message
            self._transition(VerificationStatus.ERROR)
        except asyncio.CancelledError:
            self.error_message = CANCELLED_MESSAGE
            self._transition(VerificationStatus.ERROR)
            raise
        except Exception as e:
            logger.exception(f"✗ Verification of {file.name} failed unexpectedly")
            self.error_message = f"Verification failed: {e}"
            self._transition(VerificationStatus.ERROR)
            raise
        else:
            logger.info(f"   ✅ VERIFIED - {result.file_name} from {result.source_device}")
            self.result = result
            self._transition(VerificationStatus.SUCCESS)

        return self.status

    async def _submit(self, file: SelectedFile) -> VerificationResult:
        files = {'media': (file.name, file.data, file.mime_type)}

        logger.info(f"📤 Verifying {file.name} ({file.size} bytes)")
        self.submissions += 1
        try:
            response = await self._client.post(self.verify_url, files=files)
        except httpx.RequestError as e:
            logger.error(f"✗ Cannot reach verification service at {self.verify_url}: {e}")
            raise NetworkUnreachable(NETWORK_UNREACHABLE_MESSAGE) from e

        status_code = response.status_code
        try:
            payload = VerifyResponse.model_validate(response.json())
        except (ValueError, ValidationError):
            if not response.is_success:
                raise VerificationRejected(f"Server Error: {status_code}", status_code=status_code)
            logger.error(f"✗ Malformed verification response: {response.text[:200]!r}")
            raise NetworkUnreachable(NETWORK_UNREACHABLE_MESSAGE)

        if response.is_success and payload.success is True:
            if self.strict_hash and not (payload.hash and verify_hash_format(payload.hash)):
                raise VerificationRejected(MISSING_HASH_MESSAGE, status_code=status_code)

            return VerificationResult(
                status=VerificationStatus.SUCCESS,
                download_url=payload.download_url,
                source_device=payload.source_device or DEFAULT_SOURCE_DEVICE,
                hash=payload.hash or DEFAULT_HASH,
                timestamp=payload.timestamp or utc_now_iso(),
                file_name=payload.file_name or file.name,
            )

        if payload.error:
            raise VerificationRejected(payload.error, status_code=status_code)
        if not response.is_success:
            raise VerificationRejected(f"Server Error: {status_code}", status_code=status_code)
        raise VerificationRejected(UNVERIFIED_MESSAGE, status_code=status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> 'VerificationStateMachine':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

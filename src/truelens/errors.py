# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Error taxonomy for the TrueLens capture client.

Every failure in the capture or verification path is attempt-scoped.
These exceptions are caught at the boundary of the triggering action and
turned into an alert or a terminal verification state.
"""

from typing import Optional


class TrueLensError(Exception):
    """Base class for all TrueLens client errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DeviceUnavailable(TrueLensError):
    """Camera permission denied or no camera hardware present."""


class SessionActive(TrueLensError):
    """A media session is already active (or starting)."""


class CaptureFailed(TrueLensError):
    """Drawing or encoding a frame failed."""


class AttestationRejected(TrueLensError):
    """Attestation service answered a submission with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NetworkUnreachable(TrueLensError):
    """Transport-level failure talking to the attestation service."""


class VerificationRejected(TrueLensError):
    """Verification endpoint answered with an explicit failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RegistrationRejected(TrueLensError):
    """Device registration was refused by the server."""

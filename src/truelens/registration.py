# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Device registration client.

Binds a human-readable device name to the camera's hardware identifier on
the attestation service. Both values are slugified before they are sent.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import requests

from . import __version__
from .errors import DeviceUnavailable, NetworkUnreachable, RegistrationRejected
from .media_session import MediaConstraints, MediaDevices, stop_all_tracks
from .slug import convert_to_slug

logger = logging.getLogger(__name__)

UNLABELED_CAMERA_NAME = "Standard True Lens Module"
NO_CAMERA_NAME = "TL-GEN3-HW-MODULE"
REGISTRATION_FAILED_MESSAGE = "Failed to register the hardware signature."
CONNECTION_FAILED_MESSAGE = "Could not establish a connection to the Authentication Server."


@dataclass(frozen=True)
class RegistrationResult:
    device_name: str  # Slug sent to the server
    hardware_id: str  # Slug sent to the server


def probe_camera_name(
    media_devices: MediaDevices,
    constraints: Optional[MediaConstraints] = None
) -> str:
    """
    Read the camera's hardware label by opening it briefly.

    The stream is released before returning.
    """
    try:
        stream = media_devices.get_user_media(constraints or MediaConstraints())
    except DeviceUnavailable as e:
        logger.warning(f"⚠ Camera probe failed: {e.message}")
        return NO_CAMERA_NAME

    try:
        tracks = stream.get_video_tracks()
        return tracks[0].label if tracks and tracks[0].label else UNLABELED_CAMERA_NAME
    finally:
        stop_all_tracks(stream)


class RegistrationClient:
    """HTTP client for the registration endpoint."""

    def __init__(
        self,
        register_url: str,
        health_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize registration client.

        Args:
            register_url: Full URL of the registration endpoint
            health_url: Full URL of the health endpoint (for test_connection)
            timeout: Request timeout in seconds (None = no timeout)
            session: HTTP session (a new one is created if None)
        """
        self.register_url = register_url
        self.health_url = health_url
        self.timeout = timeout

        # HTTP session for connection pooling
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': f'TrueLens-Capture/{__version__}'
        })

    def register(self, device_name: str, hardware_id: str) -> RegistrationResult:
        """
        Register a device.

        Raises:
            RegistrationRejected: Server refused the registration
            NetworkUnreachable: Server could not be reached
        """
        result = RegistrationResult(
            device_name=convert_to_slug(device_name),
            hardware_id=convert_to_slug(hardware_id),
        )
        # (None, value) parts force a multipart body without file uploads
        form = {
            'device_name': (None, result.device_name),
            'hardware_id': (None, result.hardware_id),
        }

        try:
            response = self.session.post(self.register_url, files=form, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"✗ Registration connection error: {e}")
            raise NetworkUnreachable(CONNECTION_FAILED_MESSAGE) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.ok and data.get('success') is True:
            logger.info(f"✓ Registered {result.device_name} ({result.hardware_id})")
            return result

        message = data.get('error') or REGISTRATION_FAILED_MESSAGE
        logger.error(f"✗ Registration failed: {response.status_code} {message}")
        raise RegistrationRejected(message)

    def test_connection(self) -> bool:
        """
        Test connection to the attestation service.

        Returns:
            True if server is reachable and healthy
        """
        if self.health_url is None:
            return False
        try:
            response = self.session.get(self.health_url, timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException:
            return False

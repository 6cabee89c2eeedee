# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Tests for device registration and camera name probing.
"""

from unittest.mock import MagicMock

import pytest
import requests

from truelens.errors import NetworkUnreachable, RegistrationRejected
from truelens.media_session import SyntheticMediaDevices
from truelens.registration import (
    CONNECTION_FAILED_MESSAGE,
    NO_CAMERA_NAME,
    REGISTRATION_FAILED_MESSAGE,
    UNLABELED_CAMERA_NAME,
    RegistrationClient,
    probe_camera_name,
)

REGISTER_URL = "https://attest.test/register"


def fake_response(status_code: int, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if payload is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


def client_with(response=None, error=None):
    session = MagicMock()
    session.headers = {}
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    return RegistrationClient(REGISTER_URL, "https://attest.test/health", session=session), session


def test_register_sends_slugified_fields():
    """Test both fields are slugified and sent as multipart form data."""
    client, session = client_with(fake_response(200, {"success": True}))

    result = client.register("Newsroom Camera #3", "HD Pro Webcam C920")

    assert result.device_name == "newsroom-camera-3"
    assert result.hardware_id == "hd-pro-webcam-c920"

    args, kwargs = session.post.call_args
    assert args[0] == REGISTER_URL
    assert kwargs['files'] == {
        'device_name': (None, "newsroom-camera-3"),
        'hardware_id': (None, "hd-pro-webcam-c920"),
    }


def test_register_rejected_with_reason():
    """Test server error string is surfaced."""
    client, _ = client_with(fake_response(409, {"success": False, "error": "Hardware already registered"}))

    with pytest.raises(RegistrationRejected) as exc_info:
        client.register("cam", "hw")

    assert exc_info.value.message == "Hardware already registered"


def test_register_rejected_without_reason():
    """Test missing reason falls back to the generic message."""
    client, _ = client_with(fake_response(200, {"success": False}))

    with pytest.raises(RegistrationRejected) as exc_info:
        client.register("cam", "hw")

    assert exc_info.value.message == REGISTRATION_FAILED_MESSAGE


def test_register_non_json_response():
    """Test an unparseable body is a rejection, not a crash."""
    client, _ = client_with(fake_response(502))

    with pytest.raises(RegistrationRejected):
        client.register("cam", "hw")


def test_register_connection_error():
    """Test transport failure maps to NetworkUnreachable."""
    client, _ = client_with(error=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(NetworkUnreachable) as exc_info:
        client.register("cam", "hw")

    assert exc_info.value.message == CONNECTION_FAILED_MESSAGE


def test_test_connection():
    """Test health check result."""
    client, session = client_with()
    session.get.return_value = fake_response(200, {"status": "ok"})
    assert client.test_connection() is True

    session.get.side_effect = requests.exceptions.Timeout()
    assert client.test_connection() is False


def test_probe_camera_name_releases_stream():
    """Test probing reads the track label and stops the stream."""
    devices = SyntheticMediaDevices(label="Rear Camera")

    assert probe_camera_name(devices) == "Rear Camera"
    assert len(devices.streams) == 1
    assert devices.live_streams == []


def test_probe_camera_name_fallbacks():
    """Test fallback names for unlabeled and unavailable cameras."""
    assert probe_camera_name(SyntheticMediaDevices(label="")) == UNLABELED_CAMERA_NAME
    assert probe_camera_name(SyntheticMediaDevices(available=False)) == NO_CAMERA_NAME

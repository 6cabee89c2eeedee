# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
TrueLens Capture Package

Hardware-attested photo capture: raw-pixel SHA-256 fingerprinting,
attestation submission and verification of arbitrary files.
"""

__version__ = "0.1.0"

# Export main classes and functions
from .errors import (
    TrueLensError,
    DeviceUnavailable,
    SessionActive,
    CaptureFailed,
    AttestationRejected,
    NetworkUnreachable,
    VerificationRejected,
    RegistrationRejected
)

from .models import (
    CameraDevice,
    EncodedFile,
    CapturedImage,
    CaptureSummary,
    VerificationResult,
    VerificationStatus
)

from .alerts import Alert, AlertVariant, AlertRecorder
from .slug import convert_to_slug
from .hashing import compute_sha256, hash_raw_pixels, verify_hash_format

from .media_session import (
    MediaDeviceSession,
    MediaConstraints,
    OpenCVMediaDevices,
    SyntheticMediaDevices,
    create_media_devices
)

from .frame_digest import (
    FrameDigestEngine,
    verify_capture,
    verify_encoded_file
)

from .attestation_client import AttestationClient, SignedArtifact
from .capture_history import CaptureHistoryStore
from .kv_store import KeyValueStore, MemoryStore, JsonFileStore
from .verification import VerificationStateMachine, SelectedFile
from .registration import RegistrationClient, probe_camera_name
from .main import TrueLensCamera, create_camera

__all__ = [
    # Version
    '__version__',

    # Errors
    'TrueLensError',
    'DeviceUnavailable',
    'SessionActive',
    'CaptureFailed',
    'AttestationRejected',
    'NetworkUnreachable',
    'VerificationRejected',
    'RegistrationRejected',

    # Records
    'CameraDevice',
    'EncodedFile',
    'CapturedImage',
    'CaptureSummary',
    'VerificationResult',
    'VerificationStatus',
    'Alert',
    'AlertVariant',
    'AlertRecorder',

    # Utilities
    'convert_to_slug',
    'compute_sha256',
    'hash_raw_pixels',
    'verify_hash_format',

    # Camera
    'MediaDeviceSession',
    'MediaConstraints',
    'OpenCVMediaDevices',
    'SyntheticMediaDevices',
    'create_media_devices',

    # Capture
    'FrameDigestEngine',
    'verify_capture',
    'verify_encoded_file',

    # Attestation
    'AttestationClient',
    'SignedArtifact',
    'CaptureHistoryStore',
    'KeyValueStore',
    'MemoryStore',
    'JsonFileStore',

    # Verification
    'VerificationStateMachine',
    'SelectedFile',

    # Registration
    'RegistrationClient',
    'probe_camera_name',

    # Main application
    'TrueLensCamera',
    'create_camera',
]

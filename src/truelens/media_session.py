# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Live camera stream ownership.

MediaDeviceSession owns at most one live stream at a time and is the only
component allowed to touch it. Backends:

- OpenCVMediaDevices: real cameras through cv2.VideoCapture
- SyntheticMediaDevices: generated frames for development and testing
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

import cv2
import numpy as np

from .alerts import Alert, AlertSink, AlertVariant, log_alert
from .errors import DeviceUnavailable, SessionActive
from .models import CameraDevice

logger = logging.getLogger(__name__)

DEFAULT_CAMERA_LABEL = "Standard Camera"
STANDBY_LABEL = "System Standby"


@dataclass
class MediaConstraints:
    """
    Requested stream properties.

    Width and height are preferences: the backend applies them when the
    hardware supports them and keeps its native mode otherwise.
    """
    facing_mode: str = "environment"
    ideal_width: int = 1920
    ideal_height: int = 1080
    device_index: int = 0


class VideoTrack(Protocol):
    kind: str
    label: str

    def stop(self) -> None:
        ...


class MediaStream(Protocol):
    def get_tracks(self) -> List[VideoTrack]:
        ...

    def get_video_tracks(self) -> List[VideoTrack]:
        ...

    def read_frame(self) -> Optional[np.ndarray]:
        ...


class MediaDevices(Protocol):
    def get_user_media(self, constraints: MediaConstraints) -> MediaStream:
        """Open a stream. Raises DeviceUnavailable on denial or missing hardware."""
        ...


def stop_all_tracks(stream: MediaStream) -> None:
    for track in stream.get_tracks():
        track.stop()


# =============================================================================
# OpenCV backend
# =============================================================================

def read_v4l2_label(device_index: int) -> str:
    """Hardware name the kernel reports for /dev/video<N>, or '' if unknown."""
    name_file = Path(f"/sys/class/video4linux/video{device_index}/name")
    try:
        return name_file.read_text(encoding="utf-8").strip()
    except OSError:
        return ""


class OpenCVVideoTrack:
    kind = "video"

    def __init__(self, capture: "cv2.VideoCapture", label: str):
        self._capture = capture
        self.label = label
        self.ready_state = "live"

    def read(self) -> Optional[np.ndarray]:
        if self.ready_state != "live":
            return None
        ok, frame = self._capture.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def stop(self) -> None:
        if self.ready_state == "live":
            self._capture.release()
            self.ready_state = "ended"


class OpenCVMediaStream:
    def __init__(self, track: OpenCVVideoTrack):
        self._track = track

    def get_tracks(self) -> List[VideoTrack]:
        return [self._track]

    def get_video_tracks(self) -> List[VideoTrack]:
        return [self._track]

    def read_frame(self) -> Optional[np.ndarray]:
        return self._track.read()


class OpenCVMediaDevices:
    """
    Camera access through OpenCV.

    `device_index` selects the physical camera; on devices with several
    cameras configure it to point at the environment-facing one.
    """

    def get_user_media(self, constraints: MediaConstraints) -> MediaStream:
        try:
            capture = cv2.VideoCapture(constraints.device_index)
        except cv2.error as e:
            raise DeviceUnavailable(f"Could not open camera {constraints.device_index}: {e}") from e

        if not capture.isOpened():
            capture.release()
            raise DeviceUnavailable(
                f"Camera {constraints.device_index} not available (permission denied or no hardware)"
            )

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info(f"✓ Camera {constraints.device_index} opened: {width}x{height}")

        label = read_v4l2_label(constraints.device_index)
        return OpenCVMediaStream(OpenCVVideoTrack(capture, label))


# =============================================================================
# Synthetic backend
# =============================================================================

class SyntheticVideoTrack:
    kind = "video"

    def __init__(self, label: str):
        self.label = label
        self.ready_state = "live"

    def stop(self) -> None:
        self.ready_state = "ended"


class SyntheticMediaStream:
    """
    Generates BGR frames with random noise over a horizontal gradient.

    The first `warmup_frames` reads return None, like a camera that has not
    decoded its first frame yet.
    """

    def __init__(
        self,
        size: Tuple[int, int],
        label: str,
        warmup_frames: int = 0,
        seed: Optional[int] = None
    ):
        self.size = size
        self._track = SyntheticVideoTrack(label)
        self._warmup = warmup_frames
        self._rng = np.random.default_rng(seed)

    def get_tracks(self) -> List[VideoTrack]:
        return [self._track]

    def get_video_tracks(self) -> List[VideoTrack]:
        return [self._track]

    def read_frame(self) -> Optional[np.ndarray]:
        if self._track.ready_state != "live":
            return None
        if self._warmup > 0:
            self._warmup -= 1
            return None

        width, height = self.size
        frame = self._rng.integers(0, 128, (height, width, 3), dtype=np.uint8)
        gradient = np.linspace(0, 127, width, dtype=np.uint8)
        frame += gradient[np.newaxis, :, np.newaxis]
        return frame


class SyntheticMediaDevices:
    """Mock camera for development without hardware."""

    def __init__(
        self,
        size: Tuple[int, int] = (640, 480),
        label: str = "Synthetic Camera",
        available: bool = True,
        warmup_frames: int = 0,
        seed: Optional[int] = None
    ):
        self.size = size
        self.label = label
        self.available = available
        self.warmup_frames = warmup_frames
        self.seed = seed
        self.streams: List[SyntheticMediaStream] = []

    def get_user_media(self, constraints: MediaConstraints) -> MediaStream:
        if not self.available:
            raise DeviceUnavailable("Permission denied")

        stream = SyntheticMediaStream(
            self.size, self.label, warmup_frames=self.warmup_frames, seed=self.seed
        )
        self.streams.append(stream)
        return stream

    @property
    def live_streams(self) -> List[SyntheticMediaStream]:
        return [s for s in self.streams if s._track.ready_state == "live"]


def create_media_devices(use_mock: bool = False) -> MediaDevices:
    if use_mock:
        logger.warning("⚠ Using SyntheticMediaDevices (synthetic frames)")
        return SyntheticMediaDevices()
    return OpenCVMediaDevices()


# =============================================================================
# Session
# =============================================================================

class MediaDeviceSession:
    """
    Owns the lifetime of one live capture stream.

    Usage:
        async with MediaDeviceSession(devices) as session:
            await session.start()
            frame = session.current_frame()

    The stream is released when the block exits, on every exit path.
    """

    def __init__(
        self,
        media_devices: MediaDevices,
        constraints: Optional[MediaConstraints] = None,
        on_alert: AlertSink = log_alert
    ):
        self.media_devices = media_devices
        self.constraints = constraints or MediaConstraints()
        self.on_alert = on_alert
        self.device: Optional[CameraDevice] = None
        self._stream: Optional[MediaStream] = None
        self._starting = False

    @property
    def active(self) -> bool:
        return self._stream is not None

    @property
    def starting(self) -> bool:
        return self._starting

    @property
    def label(self) -> str:
        if self.device is None:
            return STANDBY_LABEL
        return self.device.label

    async def start(self) -> CameraDevice:
        """
        Acquire the camera.

        Raises:
            SessionActive: If a stream is already active or being acquired
            DeviceUnavailable: Permission denied or no hardware
        """
        if self._stream is not None or self._starting:
            raise SessionActive("Media session already active; stop it before starting another")

        self._starting = True
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.media_devices.get_user_media, self.constraints)
        try:
            stream = await asyncio.shield(future)
        except asyncio.CancelledError:
            # The open may still complete in the worker; release whatever it yields.
            future.add_done_callback(_release_orphaned_stream)
            raise
        except DeviceUnavailable as e:
            logger.warning(f"⚠ Camera unavailable: {e.message}")
            self.on_alert(Alert(
                AlertVariant.WARNING, 'Camera Error', 'Could not access the physical camera module.'
            ))
            raise
        finally:
            self._starting = False

        self._stream = stream
        tracks = stream.get_video_tracks()
        label = tracks[0].label if tracks and tracks[0].label else DEFAULT_CAMERA_LABEL
        self.device = CameraDevice(label=label, active=True)
        logger.info(f"✓ Camera started: {label}")
        return self.device

    def stop(self) -> None:
        """Stop every track and release the stream. No-op when inactive."""
        stream, self._stream = self._stream, None
        if stream is None:
            return

        stop_all_tracks(stream)
        self.device = None
        logger.info("✓ Camera stopped")

    async def toggle(self) -> bool:
        """
        Stop the camera if it is running, start it otherwise.

        A toggle while a start is in flight is ignored. Camera errors are
        reported through the alert sink and leave the camera inactive.

        Returns:
            Whether the camera is active afterwards
        """
        if self._starting:
            logger.debug("Toggle ignored: camera start in progress")
            return False

        if self.active:
            self.stop()
            return False

        try:
            await self.start()
        except DeviceUnavailable:
            return False
        return True

    def current_frame(self) -> Optional[np.ndarray]:
        """
        Latest decoded frame, or None if inactive or not decoded yet.

        Reads on the calling thread and blocks for at most one frame period,
        so a capture reads and hashes the same frame without yielding.
        """
        stream = self._stream
        if stream is None:
            return None
        return stream.read_frame()

    async def wait_until_ready(self, timeout: float = 5.0, poll_interval: float = 0.05) -> bool:
        """
        Poll until the stream has decoded a frame.

        Reads run in a worker thread so warm-up does not stall the event loop.
        """
        deadline = time.monotonic() + timeout
        while self.active:
            if await asyncio.to_thread(self.current_frame) is not None:
                return True
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(poll_interval)
        return False

    async def __aenter__(self) -> 'MediaDeviceSession':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


def _release_orphaned_stream(future: "asyncio.Future") -> None:
    if future.cancelled() or future.exception() is not None:
        return
    stop_all_tracks(future.result())
    logger.info("✓ Released camera opened after cancellation")

# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
TrueLens Capture - Main CLI Application

Captures frames from the camera, fingerprints the raw pixels, submits them
for attestation and verifies arbitrary files against the attestation service.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .alerts import Alert, AlertRecorder, AlertSink, AlertVariant, log_alert
from .attestation_client import AttestationClient
from .blobs import BlobRegistry
from .capture_history import CaptureHistoryStore
from .config import Settings, configure_logging, get_settings
from .downloads import DownloadManager
from .errors import CaptureFailed, TrueLensError
from .frame_digest import FrameDigestEngine
from .kv_store import JsonFileStore, KeyValueStore
from .media_session import MediaConstraints, MediaDeviceSession, create_media_devices
from .models import CapturedImage, VerificationStatus
from .registration import RegistrationClient, probe_camera_name
from .verification import SelectedFile, VerificationStateMachine

logger = logging.getLogger(__name__)


class TrueLensCamera:
    """
    Capture pipeline orchestrating camera, hashing, attestation and history.
    """

    def __init__(
        self,
        session: MediaDeviceSession,
        engine: FrameDigestEngine,
        uploader: AttestationClient,
        history: CaptureHistoryStore,
        on_alert: AlertSink = log_alert
    ):
        self.session = session
        self.engine = engine
        self.uploader = uploader
        self.history = history
        self.on_alert = on_alert

    async def toggle_camera(self) -> bool:
        """Single mutation path for the camera (button and keyboard shortcut)."""
        return await self.session.toggle()

    async def capture_photo(self) -> Optional[CapturedImage]:
        """
        Capture, fingerprint and attest one frame.

        Workflow:
        1. Grab the current frame
        2. Draw, read back, hash and encode it
        3. Submit the PNG for attestation and download the signed artifact
        4. Record the capture in history

        Returns:
            The recorded capture, or None if nothing was recorded
        """
        if not self.session.active:
            self.on_alert(Alert(AlertVariant.ERROR, 'System Error', 'Camera interface not initialized.'))
            return None

        image = None
        try:
            image = self.engine.capture(self.session.current_frame())
            if image is None:
                logger.debug("No decoded frame available yet")
                return None

            await self.uploader.submit(image.encoded_file, self.session.label)

        except CaptureFailed as e:
            logger.error(f"✗ Capture failed: {e.message}")
            self.on_alert(Alert(AlertVariant.ERROR, 'Capture Failed', e.message))
            return None

        except (TrueLensError, OSError) as e:
            message = e.message if isinstance(e, TrueLensError) else str(e)
            logger.error(f"✗ Capture/upload process failed: {message}")
            if image is not None:
                self.engine.blobs.revoke(image.display_url)
            self.on_alert(Alert(AlertVariant.ERROR, 'Authentication Failed', message))
            return None

        try:
            self.history.record(image)
        except OSError as e:
            logger.error(f"✗ Could not save capture record: {e}")
            self.engine.blobs.revoke(image.display_url)
            self.on_alert(Alert(AlertVariant.ERROR, 'Save Failed', f"Capture record could not be saved: {e}"))
            return None

        self.on_alert(Alert(
            AlertVariant.SUCCESS, 'Secure Capture Saved', 'Media hash verified and recorded on protocol.'
        ))
        return image

    async def close(self) -> None:
        """Release the camera and end the session."""
        self.session.stop()
        self.history.clear()
        await self.uploader.aclose()


def create_camera(
    settings: Settings,
    use_mock: bool = False,
    on_alert: AlertSink = log_alert,
    store: Optional[KeyValueStore] = None
) -> TrueLensCamera:
    """Wire a TrueLensCamera from settings."""
    blobs = BlobRegistry()
    constraints = MediaConstraints(
        facing_mode=settings.facing_mode,
        ideal_width=settings.ideal_width,
        ideal_height=settings.ideal_height,
        device_index=settings.camera_index,
    )
    session = MediaDeviceSession(create_media_devices(use_mock), constraints, on_alert=on_alert)
    uploader = AttestationClient(
        settings.upload_url,
        DownloadManager(settings.download_dir, blobs),
        timeout=settings.request_timeout,
    )
    history = CaptureHistoryStore(store or JsonFileStore(settings.state_dir), blobs)
    return TrueLensCamera(session, FrameDigestEngine(blobs), uploader, history, on_alert=on_alert)


# =============================================================================
# Commands
# =============================================================================

async def run_capture(settings: Settings, use_mock: bool, count: int, interval: float) -> int:
    recorder = AlertRecorder()
    camera = create_camera(settings, use_mock=use_mock, on_alert=recorder)
    recorded = 0
    try:
        if not await camera.toggle_camera():
            if recorder.last is not None:
                print(f"✗ {recorder.last.title}: {recorder.last.message}")
            return 1
        print(f"✓ Camera: {camera.session.label}")

        if not await camera.session.wait_until_ready():
            print("✗ Camera did not deliver a frame")
            return 1

        for i in range(count):
            image = await camera.capture_photo()
            if image is not None:
                recorded += 1
                print(f"✓ {image.file_name}  hash={image.content_hash}")
            elif recorder.last is not None:
                print(f"✗ {recorder.last.title}: {recorder.last.message}")

            if i < count - 1:
                await asyncio.sleep(interval)
    finally:
        await camera.close()

    print(f"Captured {recorded}/{count} photos")
    return 0 if recorded == count else 1


async def run_live(settings: Settings, use_mock: bool) -> int:
    camera = create_camera(settings, use_mock=use_mock, on_alert=_print_alert)
    print("Commands: [c] toggle camera  [enter] capture  [h] history  [q] quit")
    try:
        while True:
            status = camera.session.label
            command = (await asyncio.to_thread(input, f"[{status}] > ")).strip().lower()

            if command == 'q':
                break
            elif command == 'c':
                await camera.toggle_camera()
            elif command in ('', 's'):
                await camera.capture_photo()
            elif command == 'h':
                print(f"{len(camera.history)} capture(s) this session")
                for image in camera.history:
                    print(f"  {image.created_at}  {image.file_name}  {image.content_hash[:16]}...")
            else:
                print(f"Unknown command: {command!r}")
    except (EOFError, KeyboardInterrupt):
        print()
    finally:
        await camera.close()
    return 0


async def run_verify(settings: Settings, path: Path) -> int:
    async with VerificationStateMachine(
        settings.verify_url, timeout=settings.request_timeout, strict_hash=settings.strict_hash
    ) as machine:
        machine.select_file(SelectedFile.from_path(path))
        status = await machine.authenticate()

        if status is VerificationStatus.SUCCESS:
            result = machine.result
            print("✅ Verified")
            print(f"  File:          {result.file_name}")
            print(f"  Source device: {result.source_device}")
            print(f"  Hash:          {result.hash}")
            print(f"  Timestamp:     {result.timestamp}")
            if result.download_url:
                print(f"  Download:      {result.download_url}")
            return 0

        print(f"❌ {machine.error_message}")
        return 1


def run_register(settings: Settings, device_name: str, hardware_id: Optional[str], use_mock: bool) -> int:
    if hardware_id is None:
        constraints = MediaConstraints(device_index=settings.camera_index, facing_mode=settings.facing_mode)
        hardware_id = probe_camera_name(create_media_devices(use_mock), constraints)
    print(f"Hardware: {hardware_id}")

    client = RegistrationClient(settings.register_url, settings.health_url, timeout=settings.request_timeout)
    try:
        result = client.register(device_name, hardware_id)
    except TrueLensError as e:
        print(f"✗ {e.message}")
        return 1

    print(f"✓ Registered {result.device_name} ({result.hardware_id})")
    return 0


def run_last(settings: Settings) -> int:
    summary = CaptureHistoryStore(JsonFileStore(settings.state_dir)).last_capture()
    if summary is None:
        print("No capture recorded yet")
        return 1

    print("=== Last Capture ===")
    print(f"  File:    {summary.file_name}")
    print(f"  Hash:    {summary.content_hash}")
    print(f"  Created: {summary.created_at}")
    return 0


def run_test(settings: Settings) -> int:
    print("Testing attestation service connection...")
    client = RegistrationClient(settings.register_url, settings.health_url)
    if client.test_connection():
        print("✓ Attestation service is reachable")
        return 0
    print("✗ Attestation service not reachable")
    return 1


def _print_alert(alert: Alert) -> None:
    marker = {
        AlertVariant.INFO: "ℹ",
        AlertVariant.SUCCESS: "✓",
        AlertVariant.WARNING: "⚠",
        AlertVariant.ERROR: "✗",
    }[alert.variant]
    print(f"{marker} {alert.title}: {alert.message}")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='TrueLens hardware-attested capture client',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single attested capture
  python -m truelens capture

  # Five captures, two seconds apart, with the synthetic camera
  python -m truelens capture --count 5 --interval 2 --mock

  # Interactive mode ([c] toggles the camera)
  python -m truelens live

  # Verify a file
  python -m truelens verify signed_TL-AUTH-1704067200000.png

  # Register this camera
  python -m truelens register "Newsroom Camera 3"
        """
    )

    parser.add_argument(
        'command',
        choices=['capture', 'live', 'verify', 'register', 'last', 'test'],
        help='Command to execute'
    )
    parser.add_argument('target', nargs='?', help='File to verify, or device name to register')
    parser.add_argument('--api', help='Attestation service base URL')
    parser.add_argument('--downloads', type=Path, help='Directory for signed artifacts')
    parser.add_argument('--state-dir', type=Path, help='Directory for persisted state')
    parser.add_argument('--camera', type=int, help='Camera device index')
    parser.add_argument('--count', type=int, default=1, help='Number of captures')
    parser.add_argument('--interval', type=float, default=1.0, help='Seconds between captures')
    parser.add_argument('--hardware-id', help='Hardware label to register (default: probe the camera)')
    parser.add_argument('--mock', action='store_true', help='Use synthetic camera for testing')
    parser.add_argument('--log-level', help='Logging level (default: from settings)')

    args = parser.parse_args(argv)

    overrides = {}
    if args.api:
        overrides['api_base_url'] = args.api
    if args.downloads:
        overrides['download_dir'] = args.downloads
    if args.state_dir:
        overrides['state_dir'] = args.state_dir
    if args.camera is not None:
        overrides['camera_index'] = args.camera
    settings = get_settings().model_copy(update=overrides)

    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == 'capture':
            code = asyncio.run(run_capture(settings, args.mock, max(args.count, 1), args.interval))

        elif args.command == 'live':
            code = asyncio.run(run_live(settings, args.mock))

        elif args.command == 'verify':
            if not args.target:
                print("Error: file to verify required")
                sys.exit(1)
            code = asyncio.run(run_verify(settings, Path(args.target)))

        elif args.command == 'register':
            if not args.target:
                print("Error: device name required")
                sys.exit(1)
            code = run_register(settings, args.target, args.hardware_id, args.mock)

        elif args.command == 'last':
            code = run_last(settings)

        else:
            code = run_test(settings)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)

    except Exception as e:
        print(f"\nError: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()

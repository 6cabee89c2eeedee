# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
One-shot downloads of blob payloads into the download directory.
"""

import logging
import os
import tempfile
from pathlib import Path

from .blobs import BlobRegistry

logger = logging.getLogger(__name__)


class DownloadManager:
    """
    Saves blob payloads to disk under a caller-chosen file name.

    Files are written to a temporary sibling first and moved into place,
    so a reader never sees a partially written artifact.
    """

    def __init__(self, download_dir: Path, blobs: BlobRegistry):
        self.download_dir = Path(download_dir)
        self.blobs = blobs

    def download(self, url: str, file_name: str) -> Path:
        """
        Write the blob behind `url` to `<download_dir>/<file_name>`.

        Args:
            url: Live blob URL
            file_name: Target file name (path components are stripped)

        Returns:
            Path of the written file
        """
        blob = self.blobs.resolve(url)
        self.download_dir.mkdir(parents=True, exist_ok=True)

        target = self.download_dir / Path(file_name).name
        fd, tmp_name = tempfile.mkstemp(dir=self.download_dir, prefix=".part-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(blob.data)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"✓ Downloaded: {target.name} ({len(blob.data)} bytes)")
        return target

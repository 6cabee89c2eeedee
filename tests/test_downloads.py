# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Tests for blob references and one-shot downloads.
"""

import pytest


def test_download_writes_blob(downloads, blobs):
    """Test the blob payload lands under the requested name."""
    url = blobs.create_url(b"payload", "image/png")

    path = downloads.download(url, "signed_TL-AUTH-1.png")

    assert path == downloads.download_dir / "signed_TL-AUTH-1.png"
    assert path.read_bytes() == b"payload"
    assert [p.name for p in downloads.download_dir.iterdir()] == ["signed_TL-AUTH-1.png"]


def test_download_strips_path_components(downloads, blobs):
    """Test a file name cannot escape the download directory."""
    url = blobs.create_url(b"x")
    path = downloads.download(url, "../../etc/passwd")
    assert path.parent == downloads.download_dir


def test_revoked_blob_cannot_be_downloaded(downloads, blobs):
    """Test revoke releases the payload."""
    url = blobs.create_url(b"x")
    blobs.revoke(url)
    blobs.revoke(url)

    assert url not in blobs
    with pytest.raises(KeyError):
        downloads.download(url, "late.png")

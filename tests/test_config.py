# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""
Tests for settings loading.
"""

from pathlib import Path

from truelens.config import Settings


def test_defaults():
    """Test default endpoints and camera preferences."""
    settings = Settings(_env_file=None)

    assert settings.upload_url == "https://api.truelens.qzz.io/uploadmedia"
    assert settings.verify_url == "https://api.truelens.qzz.io/verifymedia"
    assert settings.register_url == "https://api.truelens.qzz.io/register"
    assert (settings.ideal_width, settings.ideal_height) == (1920, 1080)
    assert settings.facing_mode == "environment"
    assert settings.request_timeout is None
    assert settings.strict_hash is False


def test_environment_overrides(monkeypatch):
    """Test TRUELENS_* variables override defaults."""
    monkeypatch.setenv("TRUELENS_API_BASE_URL", "http://localhost:5000/")
    monkeypatch.setenv("TRUELENS_STRICT_HASH", "true")
    monkeypatch.setenv("TRUELENS_DOWNLOAD_DIR", "/tmp/signed")

    settings = Settings(_env_file=None)

    assert settings.upload_url == "http://localhost:5000/uploadmedia"
    assert settings.strict_hash is True
    assert settings.download_dir == Path("/tmp/signed")

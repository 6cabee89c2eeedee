# SPDX-License-Identifier: Apache-2.0
# Copyright (C) 2024-2026 The Birthmark Standard Foundation

"""Configuration management for the TrueLens capture client."""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from TRUELENS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRUELENS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Attestation service
    api_base_url: str = Field(
        default="https://api.truelens.qzz.io", description="Attestation service base URL"
    )
    upload_path: str = "/uploadmedia"
    verify_path: str = "/verifymedia"
    register_path: str = "/register"
    health_path: str = "/health"
    request_timeout: Optional[float] = Field(
        default=None, description="HTTP timeout in seconds (None = no timeout)"
    )

    # Camera
    camera_index: int = 0
    facing_mode: Literal["environment", "user"] = "environment"
    ideal_width: int = 1920
    ideal_height: int = 1080

    # Local storage
    download_dir: Path = Path("./data/downloads")
    state_dir: Path = Path("./data/state")

    # Verification
    strict_hash: bool = Field(
        default=False, description="Treat a verification success without a hash as a failure"
    )

    # Logging
    log_level: str = "INFO"

    def endpoint(self, path: str) -> str:
        return f"{self.api_base_url.rstrip('/')}{path}"

    @property
    def upload_url(self) -> str:
        return self.endpoint(self.upload_path)

    @property
    def verify_url(self) -> str:
        return self.endpoint(self.verify_path)

    @property
    def register_url(self) -> str:
        return self.endpoint(self.register_path)

    @property
    def health_url(self) -> str:
        return self.endpoint(self.health_path)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging the way every TrueLens entry point does."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_PREVIEW_KEY = "pagebuilder-preview"


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `PAGESYNC_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    snapshot_dir : Path
        Directory used by the file-backed snapshot medium; maps from
        `PAGESYNC_SNAPSHOT_DIR`.
    snapshot_quota_bytes : int
        Total bytes a snapshot medium may hold before writes are rejected with
        `QuotaExceeded`; maps from `PAGESYNC_SNAPSHOT_QUOTA`.
    preview_key : str
        Well-known key holding the latest preview document.
    history_size : int
        Capacity of the broadcast hub's trailing history.
    upload_dir : Path
        Directory where the media collaborator stores uploaded files.
    max_upload_bytes : int
        Largest accepted upload.
    """

    environment: EnvName = Field(default="dev", alias="PAGESYNC_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")

    snapshot_dir: Path = Field(
        default=Path("artifacts") / "snapshots", alias="PAGESYNC_SNAPSHOT_DIR"
    )
    snapshot_quota_bytes: int = Field(
        default=5 * 1024 * 1024, ge=1, alias="PAGESYNC_SNAPSHOT_QUOTA"
    )
    preview_key: str = Field(
        default=DEFAULT_PREVIEW_KEY, min_length=1, alias="PAGESYNC_PREVIEW_KEY"
    )
    history_size: int = Field(default=50, ge=1, alias="PAGESYNC_HISTORY_SIZE")

    upload_dir: Path = Field(default=Path("artifacts") / "uploads", alias="PAGESYNC_UPLOAD_DIR")
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024, ge=1, alias="PAGESYNC_MAX_UPLOAD_BYTES"
    )

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("PAGESYNC_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "pagesync") -> logging.Logger:
    """Return a process-global logger configured to the current log level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger

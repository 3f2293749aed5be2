"""
Application Configuration.

Pydantic Settings model for the ServiceHub client.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Marketplace REST API ---
    API_BASE_URL: str = ""
    API_TIMEOUT_S: float = Field(default=15.0, gt=0)

    # --- Secure on-device storage ---
    SECURE_STORE_PATH: str = "servicehub_secure.db"
    STORAGE_SALT_PATH: str = str(Path.home() / ".servicehub_storage_salt")
    STORAGE_KDF_ITERATIONS: int = Field(default=600_000, ge=1)

    # --- Logging ---
    LOG_FILE: str = "servicehub.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a hint that the client has nowhere to talk to.
        """
        _log = logging.getLogger("servicehub.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.API_BASE_URL:
            _log.warning(
                "API_BASE_URL is empty; remote calls will fail until it is set. "
                "A stored session can still be restored."
            )

        return self

    @property
    def api_base_url(self) -> str:
        """Base URL without a trailing slash, ready for path joining."""
        return self.API_BASE_URL.rstrip("/")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path stays lock-free
    while first initialisation remains thread-safe.  Prefer constructor
    injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance

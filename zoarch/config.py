"""
Configuration Management

Centralized configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from typing import Optional

STORAGE_BACKENDS = ("json", "sqlite")


def _optional_int(name: str) -> Optional[int]:
    value = os.environ.get(name, "").strip()
    return int(value) if value else None


def _optional_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name, "").strip().lower()
    if not value:
        return None
    return value in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Environment
    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

    # Local storage
    DATA_DIR = Path(os.environ.get("ZOARCH_DATA_DIR", "./data"))
    STORAGE_BACKEND = os.environ.get("ZOARCH_STORAGE_BACKEND", "json").lower()
    STORAGE_QUOTA = _optional_int("ZOARCH_STORAGE_QUOTA")
    DEMO_DATA = Path(os.environ["ZOARCH_DEMO_DATA"]) if os.environ.get("ZOARCH_DEMO_DATA") else None

    # None means "use the saved storage mode"
    USE_REMOTE = _optional_bool("ZOARCH_USE_REMOTE")

    # GitHub file location; empty values fall back to saved settings
    GITHUB_OWNER = os.environ.get("GITHUB_OWNER", "")
    GITHUB_REPO = os.environ.get("GITHUB_REPO", "")
    GITHUB_BRANCH = os.environ.get("GITHUB_BRANCH", "main")
    GITHUB_PATH = os.environ.get("GITHUB_PATH", "data/inventory.json")
    GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com")
    GITHUB_TIMEOUT = float(os.environ.get("GITHUB_TIMEOUT", "30"))

    # CORS
    ALLOWED_ORIGINS = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8000,http://127.0.0.1:8000"
    ).split(",")

    # Server
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "8000"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "info")
    LOG_JSON = os.environ.get("LOG_JSON", "false").lower() == "true"

    @classmethod
    def validate(cls):
        """Validate configuration and raise errors for invalid values."""
        if cls.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ValueError(
                f"ZOARCH_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got {cls.STORAGE_BACKEND!r}"
            )
        if cls.STORAGE_QUOTA is not None and cls.STORAGE_QUOTA <= 0:
            raise ValueError("ZOARCH_STORAGE_QUOTA must be a positive number of bytes")
        if cls.GITHUB_TIMEOUT <= 0:
            raise ValueError("GITHUB_TIMEOUT must be positive")

    @classmethod
    def storage_config(cls) -> dict:
        """Arguments for create_storage() for the configured backend."""
        if cls.STORAGE_BACKEND == "sqlite":
            path = cls.DATA_DIR / "zoarch.db"
        else:
            path = cls.DATA_DIR
        return {"path": str(path), "max_bytes": cls.STORAGE_QUOTA}

    @classmethod
    def github_settings(cls) -> dict:
        """Remote location overrides taken from the environment."""
        settings = {
            "api_url": cls.GITHUB_API_URL,
            "timeout": cls.GITHUB_TIMEOUT,
        }
        if cls.GITHUB_OWNER and cls.GITHUB_REPO:
            settings.update(
                owner=cls.GITHUB_OWNER,
                repo=cls.GITHUB_REPO,
                branch=cls.GITHUB_BRANCH,
                path=cls.GITHUB_PATH,
            )
        return settings


def get_config() -> Config:
    """Get validated configuration."""
    Config.validate()
    return Config

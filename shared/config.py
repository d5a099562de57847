# vibeshare/shared/config.py

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import List
import logging

# Set up a logger for this module
logger = logging.getLogger(__name__)

MB = 1024 * 1024

DEFAULT_FRAME_ANCESTORS = [
    "http://localhost:3000",
    "https://localhost:3000",
    "http://localhost:8000",
    "https://localhost:8000",
    "http://127.0.0.1:3000",
    "https://127.0.0.1:3000",
    "http://127.0.0.1:8000",
    "https://127.0.0.1:8000",
]


@dataclass
class Settings:
    storage_root: Path
    data_dir: Path
    http_host: str
    http_port: int
    jwt_secret: str
    api_prefix: str = "/api"
    max_file_size: int = 10 * MB
    max_files: int = 1000
    max_archive_size: int = 500 * MB
    max_archive_entries: int = 10000
    enforce_allowlist: bool = True
    frame_ancestors: List[str] = field(default_factory=lambda: list(DEFAULT_FRAME_ANCESTORS))
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    terminal_timeout: float = 30.0
    log_level: str = "DEBUG"

    @property
    def preview_prefix(self) -> str:
        """URL prefix that preview links are built under, e.g. /api/projects."""
        return f"{self.api_prefix.rstrip('/')}/projects"


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}. Using default {default}.")
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.environ.get(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> Settings:
    """
    Build the settings from environment variables.
    Every value has a development default so the server starts with no configuration.
    """
    home = Path(os.environ.get("VIBESHARE_HOME", Path.cwd()))
    jwt_secret = os.environ.get("VIBESHARE_JWT_SECRET")
    if not jwt_secret:
        logger.warning("VIBESHARE_JWT_SECRET not set. Using an insecure development secret.")
        jwt_secret = "vibeshare-dev-secret"

    try:
        terminal_timeout = float(os.environ.get("VIBESHARE_TERMINAL_TIMEOUT", "30"))
    except ValueError:
        logger.warning("Invalid VIBESHARE_TERMINAL_TIMEOUT. Using 30 seconds.")
        terminal_timeout = 30.0

    return Settings(
        storage_root=Path(os.environ.get("VIBESHARE_STORAGE_ROOT", home / "uploads")),
        data_dir=Path(os.environ.get("VIBESHARE_DATA_DIR", home / ".vibeshare")),
        http_host=os.environ.get("VIBESHARE_HOST", "0.0.0.0"),
        http_port=_env_int("HTTP_PORT", 5000),
        jwt_secret=jwt_secret,
        api_prefix=os.environ.get("VIBESHARE_API_PREFIX", "/api"),
        max_file_size=_env_int("VIBESHARE_MAX_FILE_SIZE", 10 * MB),
        max_files=_env_int("VIBESHARE_MAX_FILES", 1000),
        max_archive_size=_env_int("VIBESHARE_MAX_ARCHIVE_SIZE", 500 * MB),
        max_archive_entries=_env_int("VIBESHARE_MAX_ARCHIVE_ENTRIES", 10000),
        enforce_allowlist=_env_bool("VIBESHARE_ENFORCE_ALLOWLIST", True),
        frame_ancestors=_env_list("VIBESHARE_FRAME_ANCESTORS", DEFAULT_FRAME_ANCESTORS),
        cors_origins=_env_list("VIBESHARE_CORS_ORIGINS", ["http://localhost:3000"]),
        terminal_timeout=terminal_timeout,
        log_level=os.environ.get("VIBESHARE_LOG_LEVEL", "DEBUG").upper(),
    )


settings = load_settings()
logger.info(f"Storage root: {settings.storage_root}")
logger.info(f"Metadata directory: {settings.data_dir}")

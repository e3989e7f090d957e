"""Environment settings for the ingestion pipeline.

Values load from environment variables prefixed with ``FLEETVIEW_`` and an
optional ``.env`` file at the project root.

Priority:
1. Environment variables (highest priority)
2. .env file values
3. Default values in this file
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root: src/fleetview/core/settings.py -> src/fleetview/core/ -> src/fleetview/ -> src/ -> project_root/
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"
PACKAGE_DATA_DIR = Path(__file__).parent.parent / "data"


class IngestSettings(BaseSettings):
    """Tunables for decoding, offload decisions, lookup tables and logging."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETVIEW_",
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Offload decision
    # =========================================================================
    offload_byte_threshold: int = 1_000_000  # combined bytes, strictly greater -> worker
    offload_file_threshold: int = 3  # source count, strictly greater -> worker
    worker_enabled: bool = True  # False forces the inline path

    # =========================================================================
    # Worker process
    # =========================================================================
    worker_start_method: Literal["spawn", "forkserver", "fork"] = "spawn"
    worker_poll_interval: float = 0.05  # seconds between cancellation checks

    # =========================================================================
    # Lookup tables / location mapping (empty = built-in defaults)
    # =========================================================================
    category_map_file: str = ""
    ip_range_file: str = ""
    location_mapping_file: str = ""

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = "INFO"
    log_file: str = ""

    @field_validator("offload_byte_threshold", "offload_file_threshold", mode="after")
    @classmethod
    def clamp_thresholds(cls, value: int) -> int:
        return max(value, 0)

    @field_validator("worker_poll_interval", mode="after")
    @classmethod
    def positive_poll_interval(cls, value: float) -> float:
        return value if value > 0 else 0.05

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            return "INFO"
        return value.strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> IngestSettings:
    """Return the process-wide settings instance (cached)."""
    return IngestSettings()


settings = get_settings()


__all__ = [
    "ENV_FILE_PATH",
    "IngestSettings",
    "PACKAGE_DATA_DIR",
    "PROJECT_ROOT",
    "get_settings",
    "settings",
]

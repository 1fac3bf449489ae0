"""Runtime settings loaded from the environment.

All variables use the ``TIMETRAVEL_`` prefix, e.g. ``TIMETRAVEL_TEST_MODE=true``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_MIN_YEAR,
    IMAGE_RETRY_DELAY_SECONDS,
    IMAGE_SLOT_COUNT,
    MAX_IMAGE_RETRIES,
)

load_dotenv()


class PressSettings(BaseSettings):
    """Pipeline settings."""

    model_config = SettingsConfigDict(
        env_prefix="TIMETRAVEL_",
        env_file=".env",
        extra="ignore",
    )

    # Input validation
    min_year: int = DEFAULT_MIN_YEAR
    timezone: str = "Asia/Tokyo"

    # Image batch
    image_slot_count: int = Field(default=IMAGE_SLOT_COUNT, ge=1)
    max_image_retries: int = Field(default=MAX_IMAGE_RETRIES, ge=0)
    image_retry_delay_seconds: float = Field(default=IMAGE_RETRY_DELAY_SECONDS, ge=0)

    # Payments
    test_mode: bool = False
    stripe_secret_key: str | None = None
    stripe_api_base: str = "https://api.stripe.com/v1"
    currency: str = "jpy"
    text_price: int = 80
    image_price: int = 500

    # Paths
    providers_config_path: Path | None = None
    output_dir: Path = Path("output")
    log_dir: Path = Path("logs")


@lru_cache
def get_settings() -> PressSettings:
    """Get the process-wide settings instance."""
    return PressSettings()

"""Reclaimer sweep configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SweepConfig(BaseSettings):
    """Thresholds and batch sizes for the stuck-content and expiration sweeps.

    Environment variables:
        DAYSTART_STUCK_TIMEOUT_HOURS: Age after which in-progress content is stuck
        DAYSTART_STUCK_BATCH_SIZE: Max stuck blocks reclaimed per run
        DAYSTART_EXPIRATION_BATCH_SIZE: Page size for the expiration sweep
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    stuck_timeout_hours: float = Field(default=1.0, gt=0)
    stuck_batch_size: int = Field(default=50, ge=1)
    expiration_batch_size: int = Field(default=50, ge=1)

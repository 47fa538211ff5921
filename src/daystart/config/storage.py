"""Blob storage configuration."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseSettings):
    """Where generated audio lives.

    Environment variables:
        DAYSTART_STORAGE_BACKEND: 'local' (filesystem) or 'http' (storage REST API)
        DAYSTART_STORAGE_URL: Storage service base URL (http backend)
        DAYSTART_STORAGE_BUCKET: Bucket name
        DAYSTART_PUBLIC_BASE_URL: Public URL prefix for the local backend
        DAYSTART_STORAGE_TIMEOUT_SECONDS: Per-request timeout
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    storage_backend: Literal["local", "http"] = Field(default="local")
    storage_url: Optional[str] = Field(default=None, description="Storage service base URL")
    storage_bucket: str = Field(default="audio-files")
    public_base_url: str = Field(
        default="http://localhost:8000/audio",
        description="Public URL prefix for files served from the local backend",
    )
    storage_timeout_seconds: float = Field(default=30.0, gt=0)

"""API keys and secrets configuration."""

from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIKeysConfig(BaseSettings):
    """API keys and secrets for the pipeline.

    All keys are optional (None by default) and use SecretStr to prevent
    accidental exposure in logs or error messages.

    Environment variables:
        DAYSTART_LLM_API_KEY: LLM provider API key (Claude)
        DAYSTART_TTS_API_KEY: TTS provider API key (OpenAI)
        DAYSTART_STORAGE_API_KEY: Blob storage service key
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    llm_api_key: Optional[SecretStr] = Field(default=None, description="LLM provider API key")
    tts_api_key: Optional[SecretStr] = Field(default=None, description="OpenAI TTS API key")
    storage_api_key: Optional[SecretStr] = Field(default=None, description="Blob storage service key")

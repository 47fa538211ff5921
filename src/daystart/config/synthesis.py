"""Script and audio synthesis configuration."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SynthesisConfig(BaseSettings):
    """LLM and TTS settings for the synthesis stages.

    Note: API keys are in APIKeysConfig.

    Environment variables:
        DAYSTART_LLM_MODEL: Claude model for script generation
        DAYSTART_LLM_TIMEOUT_SECONDS: Per-call LLM timeout
        DAYSTART_SCRIPT_BATCH_SIZE: content_ready blocks per script run
        DAYSTART_TTS_MODEL: OpenAI TTS model
        DAYSTART_TTS_TIMEOUT_SECONDS: Per-call TTS timeout
        DAYSTART_AUDIO_BATCH_SIZE: script_generated blocks per audio run
        DAYSTART_MAX_RETRIES: Retries after the first attempt
        DAYSTART_DEFAULT_VOICE: Voice used when a block has none
        DAYSTART_VOICE_MAP: JSON map of app voice -> TTS voice
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    llm_model: str = Field(default="claude-3-5-sonnet-latest")
    llm_timeout_seconds: float = Field(default=30.0, gt=0)
    script_batch_size: int = Field(default=100, ge=1)

    tts_model: str = Field(default="tts-1")
    tts_timeout_seconds: float = Field(default=60.0, gt=0)
    # Matches the TTS vendor's concurrency ceiling
    audio_batch_size: int = Field(default=5, ge=1)

    max_retries: int = Field(default=3, ge=0)
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_delay_seconds: float = Field(default=10.0, ge=0)

    default_voice: str = Field(default="voice_1")
    voice_map: dict[str, str] = Field(
        default_factory=lambda: {
            "voice_1": "shimmer",
            "voice_2": "onyx",
            "voice_3": "alloy",
        },
        description="App voice identifier -> OpenAI TTS voice",
    )

    @model_validator(mode="after")
    def _default_voice_is_mapped(self) -> "SynthesisConfig":
        if self.default_voice not in self.voice_map:
            raise ValueError(
                f"default_voice '{self.default_voice}' missing from voice_map"
            )
        return self

    @property
    def voices(self) -> list[str]:
        """App voice identifiers in fan-out order."""
        return list(self.voice_map)

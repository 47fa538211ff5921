"""Configuration composition root."""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .paths import PathsConfig
from .api_keys import APIKeysConfig
from .storage import StorageConfig
from .sweeps import SweepConfig
from .synthesis import SynthesisConfig
from .producers import ProducerConfig


class PipelineConfig(BaseSettings):
    """Root configuration composing all domain configs.

    Components receive the domain config they need at construction time;
    nothing reads the environment lazily at call time.
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",  # Allows DAYSTART_SWEEPS__STUCK_BATCH_SIZE
        case_sensitive=False,
        extra="ignore",
    )

    # Domain compositions (using default_factory to avoid mutable default bug)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    api_keys: APIKeysConfig = Field(default_factory=APIKeysConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sweeps: SweepConfig = Field(default_factory=SweepConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    producers: ProducerConfig = Field(default_factory=ProducerConfig)

    def validate_production(self) -> None:
        """Validate settings required to run the synthesis stages.

        Raises:
            ValueError: If required production fields are missing
        """
        missing = []
        if self.api_keys.llm_api_key is None:
            missing.append("DAYSTART_LLM_API_KEY")
        if self.api_keys.tts_api_key is None:
            missing.append("DAYSTART_TTS_API_KEY")
        if self.storage.storage_backend == "http":
            if not self.storage.storage_url:
                missing.append("DAYSTART_STORAGE_URL")
            if self.api_keys.storage_api_key is None:
                missing.append("DAYSTART_STORAGE_API_KEY")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")


def load_config(**overrides) -> PipelineConfig:
    """Build a fresh configuration from the environment.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        New PipelineConfig instance
    """
    return PipelineConfig(**overrides)

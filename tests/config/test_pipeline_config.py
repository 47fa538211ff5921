"""Tests for the composed PipelineConfig."""

from pathlib import Path

import pytest
from pydantic import SecretStr

from daystart.config import APIKeysConfig, PipelineConfig, StorageConfig, load_config


class TestPipelineConfig:
    """Tests for PipelineConfig composition."""

    def test_composes_domain_configs(self):
        config = PipelineConfig(_env_file=None)
        assert config.sweeps.stuck_batch_size == 50
        assert config.synthesis.default_voice == "voice_1"
        assert config.producers.content_expiration_days == 3

    def test_load_config_overrides(self, tmp_path):
        config = load_config(_env_file=None, paths={"base_path": tmp_path})
        assert config.paths.db_path == Path(tmp_path) / "db" / "daystart.sqlite3"

    def test_independent_instances(self):
        """Each call builds a fresh config; nothing is shared at module level."""
        assert load_config(_env_file=None) is not load_config(_env_file=None)


class TestValidateProduction:
    """Tests for validate_production."""

    def test_missing_keys(self):
        config = PipelineConfig(_env_file=None)
        config.api_keys = APIKeysConfig(_env_file=None, llm_api_key=None, tts_api_key=None)

        with pytest.raises(ValueError) as exc_info:
            config.validate_production()

        assert "DAYSTART_LLM_API_KEY" in str(exc_info.value)
        assert "DAYSTART_TTS_API_KEY" in str(exc_info.value)

    def test_http_storage_requirements(self):
        config = PipelineConfig(_env_file=None)
        config.api_keys = APIKeysConfig(
            _env_file=None,
            llm_api_key=SecretStr("a"),
            tts_api_key=SecretStr("b"),
            storage_api_key=None,
        )
        config.storage = StorageConfig(_env_file=None, storage_backend="http", storage_url=None)

        with pytest.raises(ValueError, match="DAYSTART_STORAGE_URL, DAYSTART_STORAGE_API_KEY"):
            config.validate_production()

    def test_complete_configuration(self):
        config = PipelineConfig(_env_file=None)
        config.api_keys = APIKeysConfig(
            _env_file=None,
            llm_api_key=SecretStr("a"),
            tts_api_key=SecretStr("b"),
        )
        config.storage = StorageConfig(_env_file=None, storage_backend="local")

        config.validate_production()

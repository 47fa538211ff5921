"""Filesystem paths configuration."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PathsConfig(BaseSettings):
    """Filesystem paths for the pipeline.

    Environment variables:
        DAYSTART_BASE_PATH: Base directory (default: /srv/daystart)
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_path: Path = Field(default=Path("/srv/daystart"))

    @property
    def db_path(self) -> Path:
        return self.base_path / "db" / "daystart.sqlite3"

    @property
    def audio_path(self) -> Path:
        return self.base_path / "audio"

    @property
    def logs_path(self) -> Path:
        return self.base_path / "logs"

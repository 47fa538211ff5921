"""Tests for PathsConfig domain configuration."""

from pathlib import Path

from daystart.config.paths import PathsConfig


class TestPathsConfig:
    """Tests for PathsConfig."""

    def test_default_base_path(self, monkeypatch):
        """PathsConfig should have default base_path."""
        monkeypatch.delenv("DAYSTART_BASE_PATH", raising=False)
        paths = PathsConfig(_env_file=None)
        assert paths.base_path == Path("/srv/daystart")

    def test_base_path_from_env(self, monkeypatch):
        """PathsConfig should load base_path from DAYSTART_BASE_PATH env var."""
        monkeypatch.setenv("DAYSTART_BASE_PATH", "/tmp/daystart")
        paths = PathsConfig(_env_file=None)
        assert paths.base_path == Path("/tmp/daystart")

    def test_derived_db_path(self):
        paths = PathsConfig(_env_file=None, base_path=Path("/custom"))
        assert paths.db_path == Path("/custom/db/daystart.sqlite3")

    def test_derived_audio_path(self):
        paths = PathsConfig(_env_file=None, base_path=Path("/custom"))
        assert paths.audio_path == Path("/custom/audio")

    def test_derived_logs_path(self):
        paths = PathsConfig(_env_file=None, base_path=Path("/custom"))
        assert paths.logs_path == Path("/custom/logs")

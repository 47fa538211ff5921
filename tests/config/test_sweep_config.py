"""Tests for SweepConfig and StorageConfig."""

import pytest
from pydantic import ValidationError

from daystart.config.storage import StorageConfig
from daystart.config.sweeps import SweepConfig


class TestSweepConfig:
    """Tests for SweepConfig."""

    def test_defaults(self):
        sweeps = SweepConfig(_env_file=None)
        assert sweeps.stuck_timeout_hours == 1.0
        assert sweeps.stuck_batch_size == 50
        assert sweeps.expiration_batch_size == 50

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DAYSTART_STUCK_TIMEOUT_HOURS", "2.5")
        monkeypatch.setenv("DAYSTART_EXPIRATION_BATCH_SIZE", "10")

        sweeps = SweepConfig(_env_file=None)

        assert sweeps.stuck_timeout_hours == 2.5
        assert sweeps.expiration_batch_size == 10

    @pytest.mark.parametrize(
        "field, value",
        [("stuck_timeout_hours", 0), ("stuck_batch_size", 0), ("expiration_batch_size", -1)],
    )
    def test_rejects_non_positive(self, field, value):
        with pytest.raises(ValidationError):
            SweepConfig(_env_file=None, **{field: value})


class TestStorageConfig:
    """Tests for StorageConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DAYSTART_STORAGE_BACKEND", raising=False)
        storage = StorageConfig(_env_file=None)
        assert storage.storage_backend == "local"
        assert storage.storage_bucket == "audio-files"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            StorageConfig(_env_file=None, storage_backend="ftp")

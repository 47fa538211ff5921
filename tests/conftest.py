"""Shared test fixtures and utilities for all tests."""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest

from daystart.audit import AuditLog
from daystart.config import PathsConfig, PipelineConfig
from daystart.content_store import ContentStore
from daystart.models import ContentBlock

NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


class FakeClock:
    """Settable clock; call it to read the time."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_block(
    content_type: str = "headlines",
    status: str = "content_ready",
    day: Optional[date] = None,
    expires_in_days: int = 3,
    **overrides,
) -> ContentBlock:
    """Create a ContentBlock with sensible defaults for tests.

    ``day`` defaults to today; ``expiration_date`` is ``day + expires_in_days``.
    """
    day = day or TODAY
    fields = dict(
        content_type=content_type,
        date=day,
        expiration_date=day + timedelta(days=expires_in_days),
        status=status,
        raw_content="Top Headlines: Markets rally. Storm clears.",
    )
    fields.update(overrides)
    return ContentBlock(**fields)


def make_expired_block(status: str = "ready", days_ago: int = 5, **overrides) -> ContentBlock:
    """A block whose expiration date is already in the past."""
    overrides.setdefault("audio_location", "http://localhost/audio/headlines/old.mp3")
    overrides.setdefault("script", "Good morning.")
    return make_block(status=status, day=TODAY - timedelta(days=days_ago), **overrides)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "db" / "daystart.sqlite3"


@pytest.fixture
def store(db_path, clock):
    """Initialized content store on a temp file."""
    store = ContentStore(db_path, clock=clock)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def second_store(db_path, clock, store):
    """Independent connection to the same database, acting as another worker."""
    other = ContentStore(db_path, clock=clock)
    yield other
    other.close()


@pytest.fixture
def audit(store):
    return AuditLog(store)


@pytest.fixture
def config(tmp_path):
    """Pipeline config rooted at a temp directory, ignoring any .env file."""
    return PipelineConfig(
        _env_file=None,
        paths=PathsConfig(_env_file=None, base_path=tmp_path),
    )

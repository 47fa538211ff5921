"""Tests for best-effort audit logging."""

import logging
from unittest.mock import Mock

from daystart.audit import AuditLog
from daystart.content_store import ContentStore
from daystart.errors import StoreUnavailableError


def test_record_writes_entry(store, audit):
    result = audit.record(
        event_type="script_generated",
        status="success",
        message="Script generated",
        metadata={"voice": "voice_1"},
        content_block_id="block-1",
        user_id="user-1",
    )

    assert result.ok
    entries = store.fetch_logs(content_block_id="block-1")
    assert len(entries) == 1
    assert entries[0].event_type == "script_generated"
    assert entries[0].user_id == "user-1"
    assert entries[0].metadata == {"voice": "voice_1"}


def test_record_defaults_metadata(store, audit):
    audit.record(event_type="ping", status="info", message="hello")
    assert store.fetch_logs(event_type="ping")[0].metadata == {}


def test_store_failure_is_reported_not_raised():
    store = Mock(spec=ContentStore)
    store.insert_log.side_effect = StoreUnavailableError("database is locked")

    result = AuditLog(store).record(event_type="cleanup", status="warning", message="x")

    assert not result.ok
    assert "database is locked" in result.error
    assert result.describe() == "cleanup: database is locked"


def test_echoes_to_logger_at_matching_level(audit, caplog):
    with caplog.at_level(logging.INFO, logger="daystart.audit"):
        audit.record(event_type="expiration_cleanup", status="error", message="boom", content_block_id="b1")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert "[expiration_cleanup] boom (block=b1)" in record.getMessage()

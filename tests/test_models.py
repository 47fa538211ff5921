"""Tests for content block records."""

from datetime import datetime, timedelta, timezone

import pytest

from daystart.errors import InvalidStatusError, ValidationError
from daystart.models import ContentBlock, ContentType, parse_timestamp, to_timestamp
from daystart.status import ContentBlockStatus

from conftest import TODAY, make_block


class TestContentBlock:
    """Tests for ContentBlock validation and coercion."""

    def test_coerces_strings(self):
        block = make_block(content_type="weather", status="script_generated")
        assert block.content_type is ContentType.WEATHER
        assert block.status is ContentBlockStatus.SCRIPT_GENERATED

    def test_defaults(self):
        block = ContentBlock(content_type="wake_up", date=TODAY, expiration_date=TODAY)
        assert block.status is ContentBlockStatus.PENDING
        assert block.retry_count == 0
        assert block.priority == 0
        assert block.language_code == "en-US"
        assert block.parameters == {}

    def test_expiration_before_date_rejected(self):
        with pytest.raises(ValidationError, match="expiration_date"):
            ContentBlock(
                content_type="wake_up",
                date=TODAY,
                expiration_date=TODAY - timedelta(days=1),
            )

    def test_expiration_equal_to_date_allowed(self):
        block = ContentBlock(content_type="wake_up", date=TODAY, expiration_date=TODAY)
        assert block.expiration_date == block.date

    @pytest.mark.parametrize("field", ["retry_count", "priority", "duration_seconds"])
    def test_negative_counters_rejected(self, field):
        with pytest.raises(ValidationError, match=field):
            make_block(**{field: -1})

    def test_unknown_content_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid content type"):
            make_block(content_type="horoscope")

    def test_unknown_status_rejected(self):
        with pytest.raises(InvalidStatusError):
            make_block(status="archived")

    def test_is_shared(self):
        assert make_block().is_shared
        assert not make_block(owner="user-1").is_shared


class TestTimestamps:
    """Tests for timestamp serialization."""

    def test_round_trip_preserves_instant(self):
        moment = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_timestamp(to_timestamp(moment)) == moment

    def test_string_order_matches_time_order(self):
        earlier = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        later = earlier + timedelta(microseconds=1)
        assert to_timestamp(earlier) < to_timestamp(later)

    def test_naive_datetime_treated_as_utc(self):
        assert to_timestamp(datetime(2025, 1, 15, 12, 0)).endswith("+00:00")

    def test_parse_none(self):
        assert parse_timestamp(None) is None

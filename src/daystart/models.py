"""Content block and audit log records."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from .errors import ValidationError
from .status import ContentBlockStatus, parse_status


class ContentType(str, Enum):
    """Fixed set of content types a block may carry."""

    WAKE_UP = "wake_up"
    STRETCH = "stretch"
    CHALLENGE = "challenge"
    WEATHER = "weather"
    ENCOURAGEMENT = "encouragement"
    HEADLINES = "headlines"
    SPORTS = "sports"
    MARKETS = "markets"
    USER_INTRO = "user_intro"
    USER_OUTRO = "user_outro"
    USER_REMINDERS = "user_reminders"
    BANANA = "banana"


LOG_STATUSES = ("success", "error", "warning", "info", "partial_success")


def parse_content_type(value) -> ContentType:
    """Coerce a raw value into a ContentType.

    Raises:
        ValidationError: If the value is not a known content type
    """
    if isinstance(value, ContentType):
        return value
    try:
        return ContentType(value)
    except ValueError:
        raise ValidationError(f"Invalid content type: {value!r}") from None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(moment: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO-8601 string.

    Microseconds are always present so string comparison matches time order.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ContentBlock:
    """One unit of content moving through the pipeline.

    ``owner`` is None for shared content (e.g. general headlines) and a user
    id for personalized content. ``status`` says which stage owns the block.
    """

    content_type: ContentType
    date: date
    expiration_date: date
    status: ContentBlockStatus = ContentBlockStatus.PENDING
    id: Optional[str] = None
    owner: Optional[str] = None
    raw_content: Optional[str] = None
    script: Optional[str] = None
    audio_location: Optional[str] = None
    voice: Optional[str] = None
    duration_seconds: Optional[int] = None
    retry_count: int = 0
    priority: int = 0
    language_code: str = "en-US"
    parameters: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    script_generated_at: Optional[datetime] = None
    audio_generated_at: Optional[datetime] = None

    def __post_init__(self):
        self.content_type = parse_content_type(self.content_type)
        self.status = parse_status(self.status)
        self.validate()

    def validate(self) -> None:
        """Check record invariants.

        Raises:
            ValidationError: If any invariant is violated
        """
        if self.expiration_date < self.date:
            raise ValidationError(
                f"expiration_date {self.expiration_date} is before date {self.date}"
            )
        if self.retry_count < 0:
            raise ValidationError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.priority < 0:
            raise ValidationError(f"priority must be >= 0, got {self.priority}")
        if self.duration_seconds is not None and self.duration_seconds < 0:
            raise ValidationError(
                f"duration_seconds must be >= 0, got {self.duration_seconds}"
            )

    @property
    def is_shared(self) -> bool:
        return self.owner is None


@dataclass
class LogEntry:
    """Append-only audit record."""

    event_type: str
    status: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    content_block_id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

"""Content producers: create blocks in an initial status.

Producers never move existing blocks. A block is inserted as
``content_ready`` when its raw content is present and ``content_failed``
when the upstream data could not be gathered.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

import feedparser
import httpx

from .audit import AuditLog
from .config import ProducerConfig
from .content_store import ContentStore
from .models import ContentBlock, ContentType, parse_content_type, utc_now
from .status import ContentBlockStatus

logger = logging.getLogger(__name__)

# Lower numbers are synthesized first
HEADLINES_PRIORITY = 3


class ContentProducer:
    """Inserts new content blocks and audits their creation."""

    def __init__(
        self,
        store: ContentStore,
        audit: AuditLog,
        expiration_days: int = 3,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.audit = audit
        self.expiration_days = expiration_days
        self.clock = clock

    def publish(
        self,
        content_type,
        raw_content: Optional[str],
        *,
        owner: Optional[str] = None,
        voice: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
        priority: int = 0,
        expiration_days: Optional[int] = None,
        for_date: Optional[date] = None,
    ) -> ContentBlock:
        """Create one block for ``for_date`` (default: today, UTC).

        Raises:
            ValidationError: Unknown content type or invalid record
            StoreUnavailableError: If the insert fails
        """
        content_type = parse_content_type(content_type)
        for_date = for_date or self.clock().date()
        days = self.expiration_days if expiration_days is None else expiration_days
        has_content = bool(raw_content and raw_content.strip())

        block = self.store.insert_block(ContentBlock(
            content_type=content_type,
            date=for_date,
            expiration_date=for_date + timedelta(days=days),
            status=ContentBlockStatus.CONTENT_READY if has_content else ContentBlockStatus.CONTENT_FAILED,
            owner=owner,
            raw_content=raw_content,
            voice=voice,
            priority=priority,
            parameters=dict(parameters or {}),
        ))

        if has_content:
            self.audit.record(
                event_type="content_generated",
                status="success",
                message=f"{content_type.value} content generated successfully",
                content_block_id=block.id,
                user_id=owner,
                metadata={"content_type": content_type.value, "date": for_date.isoformat()},
            )
        else:
            self.audit.record(
                event_type="content_generation_failed",
                status="error",
                message=f"{content_type.value} content unavailable",
                content_block_id=block.id,
                user_id=owner,
                metadata={"content_type": content_type.value, "date": for_date.isoformat()},
            )
        return block


class HeadlinesProducer:
    """Shared headlines block from RSS feeds."""

    def __init__(
        self,
        producer: ContentProducer,
        config: ProducerConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.producer = producer
        self.feed_urls = list(config.headline_feeds)
        self.per_feed = config.headlines_per_feed
        self.timeout = config.feed_timeout_seconds
        self.transport = transport
        self.user_agent = "DayStart/1.0"

    def fetch_headlines(self) -> tuple[list[str], dict[str, str]]:
        """Fetch titles from every feed.

        Returns:
            (headlines, feed errors keyed by URL)
        """
        headlines: list[str] = []
        feed_errors: dict[str, str] = {}

        with httpx.Client(timeout=self.timeout, follow_redirects=True, transport=self.transport) as client:
            for feed_url in self.feed_urls:
                try:
                    logger.info(f"Fetching RSS feed: {feed_url}")
                    response = client.get(feed_url, headers={"User-Agent": self.user_agent})
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.error(f"Failed to fetch RSS feed {feed_url}: {e}")
                    feed_errors[feed_url] = str(e)
                    continue

                feed = feedparser.parse(response.content)
                if feed.bozo and not feed.entries:
                    logger.warning(f"RSS feed parsing error for {feed_url}: {feed.bozo_exception}")
                    feed_errors[feed_url] = f"parse error: {feed.bozo_exception}"
                    continue

                titles = [
                    entry.get("title", "").strip()
                    for entry in feed.entries[: self.per_feed]
                    if entry.get("title", "").strip()
                ]
                logger.info(f"Fetched {len(titles)} headlines from {feed.feed.get('title', feed_url)}")
                headlines.extend(titles)

        return headlines, feed_errors

    def produce(self, for_date: Optional[date] = None) -> ContentBlock:
        headlines, feed_errors = self.fetch_headlines()
        content = f"Top Headlines: {'. '.join(headlines)}" if headlines else None

        return self.producer.publish(
            ContentType.HEADLINES,
            content,
            parameters={"headlines": headlines, "feed_errors": feed_errors},
            priority=HEADLINES_PRIORITY,
            for_date=for_date,
        )

"""Content producer configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProducerConfig(BaseSettings):
    """Settings for blocks created by the bundled producers.

    Environment variables:
        DAYSTART_CONTENT_EXPIRATION_DAYS: Days from a block's date until it expires
        DAYSTART_HEADLINE_FEEDS: JSON list of RSS feed URLs
        DAYSTART_HEADLINES_PER_FEED: Max headlines taken from each feed
        DAYSTART_FEED_TIMEOUT_SECONDS: Per-feed fetch timeout
    """

    model_config = SettingsConfigDict(
        env_prefix="DAYSTART_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    content_expiration_days: int = Field(default=3, ge=0)
    headline_feeds: list[str] = Field(
        default_factory=lambda: [
            "https://feeds.npr.org/1001/rss.xml",
            "https://feeds.bbci.co.uk/news/world/rss.xml",
        ]
    )
    headlines_per_feed: int = Field(default=3, ge=1)
    feed_timeout_seconds: float = Field(default=10.0, gt=0)

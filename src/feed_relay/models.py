# ABOUTME: Pydantic models for subscriptions, parsed feeds and delivery results.
# ABOUTME: Defines Subscription, Entry, FeedSnapshot and DeliveryResult schemas.

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class MessageFormat(str, Enum):
    """Rich-text mode understood by the messaging transport."""

    HTML = "HTML"
    PLAIN = "PLAIN"


class Subscription(BaseModel):
    """A feed followed by one subscriber, plus polling metadata."""

    feed_url: str
    title: str = ""
    added_at: float = 0.0
    last_fetched_at: float = 0.0  # epoch seconds, 0 = never fetched

    @property
    def display_title(self) -> str:
        """Best-effort display name, falling back to the URL."""
        return self.title or self.feed_url


class Entry(BaseModel):
    """Single item of a feed."""

    title: str = ""
    link: str = ""
    description: str = ""
    published_at: datetime | None = None
    guid: str = ""
    author_name: str = ""


class FeedSnapshot(BaseModel):
    """Result of one successful fetch. Never persisted."""

    url: str
    title: str = ""
    link: str = ""
    entries: list[Entry] = Field(default_factory=list)


class DeliveryResult(BaseModel):
    """Outcome reported by the messaging transport."""

    ok: bool
    description: str = ""

# ABOUTME: Pytest fixtures and configuration for FeedRelay tests.
# ABOUTME: Provides test settings, in-memory stores, feed builders and fake collaborators.

from collections.abc import Callable
from email.utils import format_datetime
from pathlib import Path
from xml.sax.saxutils import escape

import pytest
from pydantic import SecretStr

from feed_relay.config import Settings
from feed_relay.exceptions import FetchError
from feed_relay.models import DeliveryResult, Entry, FeedSnapshot, MessageFormat
from feed_relay.storage.kv import MemoryKeyValueStore
from feed_relay.storage.subscriptions import SubscriptionStore


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """Create mock settings for testing."""
    return Settings(
        feed_timeout=5,
        feed_max_attempts=3,
        feed_retry_base_delay=1.0,
        feed_max_bytes=64 * 1024,
        feed_user_agent="FeedRelay-Test/1.0",
        min_fetch_interval=300,
        seen_set_cap=100,
        max_concurrent_fetches=2,
        run_soft_deadline=60.0,
        poll_interval=300,
        store_dir=tmp_path / "store",
        subscription_cache_ttl=3600.0,
        subscription_cache_max_entries=16,
        telegram_bot_token=SecretStr("123:test-token"),
        telegram_api_url="https://telegram.test",
        preview_max_chars=200,
        log_level="DEBUG",
        trigger_token=None,
    )


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore, mock_settings: Settings) -> SubscriptionStore:
    return SubscriptionStore(kv, mock_settings)


@pytest.fixture
def make_rss() -> Callable[..., bytes]:
    """Build an RSS 2.0 document from item dicts (guid, title, link, description, published)."""

    def _make(items: list[dict], title: str = "Example Feed") -> bytes:
        parts = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(title)}</title>",
            "<link>https://example.com/</link>",
            "<description>Example</description>",
        ]
        for item in items:
            parts.append("<item>")
            if "guid" in item:
                parts.append(f"<guid>{escape(item['guid'])}</guid>")
            if "title" in item:
                parts.append(f"<title>{escape(item['title'])}</title>")
            if "link" in item:
                parts.append(f"<link>{escape(item['link'])}</link>")
            if "description" in item:
                parts.append(f"<description>{escape(item['description'])}</description>")
            if "author" in item:
                parts.append(f"<author>{escape(item['author'])}</author>")
            if "published" in item:
                parts.append(f"<pubDate>{format_datetime(item['published'])}</pubDate>")
            parts.append("</item>")
        parts.append("</channel></rss>")
        return "\n".join(parts).encode("utf-8")

    return _make


@pytest.fixture
def make_snapshot() -> Callable[..., FeedSnapshot]:
    """Build a snapshot whose entries are identified by the given guids, in order."""

    def _make(*guids: str, url: str = "https://example.com/feed.xml", title: str = "Example Feed"):
        return FeedSnapshot(
            url=url,
            title=title,
            entries=[
                Entry(guid=guid, title=f"Entry {guid}", link=f"https://example.com/{guid}")
                for guid in guids
            ],
        )

    return _make


class FakeTransport:
    """Messaging transport that records messages instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, MessageFormat]] = []
        self.fail_for: set[str] = set()

    def send(self, destination: str, text: str, formatting: MessageFormat) -> DeliveryResult:
        if any(marker in text for marker in self.fail_for):
            return DeliveryResult(ok=False, description="Bad Request: chat not found")
        self.sent.append((destination, text, formatting))
        return DeliveryResult(ok=True)


class StubFetcher:
    """Fetcher returning canned snapshots or raising canned errors per URL."""

    def __init__(self) -> None:
        self.responses: dict[str, FeedSnapshot | FetchError] = {}
        self.calls: list[str] = []

    def fetch(self, url: str) -> FeedSnapshot:
        self.calls.append(url)
        response = self.responses[url]
        if isinstance(response, FetchError):
            raise response
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()

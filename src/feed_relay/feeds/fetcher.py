# ABOUTME: RSS/Atom feed fetcher with timeout, retry/backoff and a hard size cap.
# ABOUTME: Uses httpx for streaming downloads, tenacity for retries and feedparser for parsing.

import calendar
import contextlib
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

import feedparser
import httpx
import structlog
from bs4 import BeautifulSoup
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_incrementing

from feed_relay.config import Settings, get_settings
from feed_relay.exceptions import (
    FetchTimeoutError,
    HTTPStatusError,
    InvalidFeedError,
    InvalidURLError,
    NetworkError,
    TooLargeError,
)
from feed_relay.models import Entry, FeedSnapshot

log = structlog.get_logger()

ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8"
)

# Only transient failures are retried.
RETRYABLE_ERRORS = (NetworkError, FetchTimeoutError, HTTPStatusError)


class FeedFetcher:
    """Fetches feeds over HTTP and parses them into FeedSnapshot objects."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._sleep = sleep
        self._monotonic = monotonic
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized HTTP client, shared by scheduler worker threads."""
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    timeout=self.settings.feed_timeout,
                    headers={"User-Agent": self.settings.feed_user_agent, "Accept": ACCEPT_HEADER},
                    follow_redirects=True,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "FeedFetcher":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch(self, url: str) -> FeedSnapshot:
        """Download and parse a feed.

        Args:
            url: Absolute URL of the feed.

        Returns:
            Parsed snapshot with entries in feed order.

        Raises:
            FetchError: One of its subclasses, after retries where applicable.
        """
        _validate_url(url)
        log.debug("fetching_feed", url=url)

        body = self._download_with_retry(url)
        snapshot = self.parse(url, body)

        log.info("feed_fetched", url=url, entries=len(snapshot.entries), size=len(body))
        return snapshot

    def _download_with_retry(self, url: str) -> bytes:
        base_delay = self.settings.feed_retry_base_delay
        retrying = Retrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.settings.feed_max_attempts),
            wait=wait_incrementing(start=base_delay, increment=base_delay),
            sleep=self._sleep,
            before_sleep=lambda retry_state: log.warning(
                "feed_fetch_retry",
                url=url,
                attempt=retry_state.attempt_number,
                wait=retry_state.next_action.sleep,
                error=str(retry_state.outcome.exception()),
            ),
            reraise=True,
        )
        return retrying(self._download, url)

    def _download(self, url: str) -> bytes:
        """Perform a single GET, enforcing the size cap and attempt deadline while streaming."""
        limit = self.settings.feed_max_bytes
        timeout = self.settings.feed_timeout
        # httpx timeouts bound each socket operation; this bounds the whole attempt.
        deadline = self._monotonic() + timeout
        try:
            with self.client.stream("GET", url) as response:
                if not response.is_success:
                    raise HTTPStatusError(response.status_code)

                advertised = _content_length(response)
                if advertised is not None and advertised > limit:
                    raise TooLargeError(advertised, limit)

                chunks: list[bytes] = []
                total = 0
                for chunk in response.iter_bytes():
                    if self._monotonic() > deadline:
                        raise FetchTimeoutError(f"no complete response within {timeout}s")
                    total += len(chunk)
                    if total > limit:
                        raise TooLargeError(total, limit)
                    chunks.append(chunk)

                if self._monotonic() > deadline:
                    raise FetchTimeoutError(f"no complete response within {timeout}s")
                return b"".join(chunks)

        except httpx.TimeoutException as e:
            raise FetchTimeoutError(str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or type(e).__name__) from e

    def parse(self, url: str, body: bytes) -> FeedSnapshot:
        """Parse a raw feed body.

        Parser warnings (bozo) are tolerated as long as entries were recovered.

        Raises:
            InvalidFeedError: If nothing usable could be parsed.
        """
        parsed = feedparser.parse(body)

        if not parsed.entries:
            detail = str(parsed.bozo_exception) if parsed.bozo else "feed has no entries"
            raise InvalidFeedError(detail)

        if parsed.bozo:
            log.debug("feed_parse_warning", url=url, error=str(parsed.bozo_exception))

        feed = parsed.feed
        return FeedSnapshot(
            url=url,
            title=_clean_text(feed.get("title", "")) or url,
            link=feed.get("link", ""),
            entries=[_to_entry(raw) for raw in parsed.entries],
        )


def _validate_url(url: str) -> None:
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidURLError(url) from e
    if not parts.scheme or not parts.netloc:
        raise InvalidURLError(url)


def _content_length(response: httpx.Response) -> int | None:
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _to_entry(raw: Any) -> Entry:
    """Map a feedparser entry to the common RSS/Atom item fields."""
    description = raw.get("summary") or ""
    if not description and raw.get("content"):
        description = raw["content"][0].get("value", "")

    published_at = None
    parsed_time = raw.get("published_parsed") or raw.get("updated_parsed")
    if parsed_time:
        with contextlib.suppress(ValueError, TypeError, OverflowError):
            published_at = datetime.fromtimestamp(calendar.timegm(parsed_time), tz=UTC)

    return Entry(
        title=_clean_text(raw.get("title", "")),
        link=(raw.get("link") or "").strip(),
        description=html_to_text(description),
        published_at=published_at,
        guid=(raw.get("id") or "").strip(),
        author_name=_clean_text(raw.get("author", "")),
    )


def html_to_text(value: str) -> str:
    """Strip markup and collapse whitespace."""
    if "<" in value:
        value = BeautifulSoup(value, "html.parser").get_text(separator=" ")
    return _clean_text(value)


def _clean_text(value: str | None) -> str:
    return " ".join((value or "").split())

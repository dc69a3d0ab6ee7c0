# ABOUTME: Service for managing a subscriber's feed subscriptions.
# ABOUTME: Handles subscribe (with seen-set initialization), unsubscribe, listing and OPML export.

import time
import xml.etree.ElementTree as ET
from collections.abc import Callable

import structlog

from feed_relay.config import Settings, get_settings
from feed_relay.exceptions import FetchError, SubscriptionError
from feed_relay.feeds.dedup import diff
from feed_relay.feeds.fetcher import FeedFetcher
from feed_relay.models import Subscription
from feed_relay.storage.subscriptions import SubscriptionStore

log = structlog.get_logger()

OPML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


class SubscriptionService:
    """Service for managing feed subscriptions."""

    def __init__(
        self,
        store: SubscriptionStore,
        fetcher: FeedFetcher,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.settings = settings or get_settings()
        self._clock = clock

    def subscribe(self, subscriber_id: str, feed_url: str) -> Subscription:
        """Subscribe to a feed after validating it.

        Entries present at subscribe time are marked as seen, so history is
        not delivered.

        Args:
            subscriber_id: Individual or group identifier.
            feed_url: Absolute URL of the feed.

        Returns:
            The new subscription.

        Raises:
            SubscriptionError: If the feed is invalid or already subscribed.
        """
        feed_url = feed_url.strip()

        try:
            snapshot = self.fetcher.fetch(feed_url)
        except FetchError as e:
            log.warning(
                "subscribe_invalid_feed", subscriber_id=subscriber_id, url=feed_url, error=str(e)
            )
            raise SubscriptionError(f"Could not read feed {feed_url}: {e}") from e

        subscriptions = self.store.list_subscriptions(subscriber_id)
        if any(sub.feed_url == feed_url for sub in subscriptions):
            log.info("already_subscribed", subscriber_id=subscriber_id, url=feed_url)
            raise SubscriptionError(f"Already subscribed to {feed_url}")

        # Seen-set first: a subscription must never be stored without one.
        existing = self.store.get_seen_set(feed_url)
        _, seen = diff(existing, snapshot, cap=self.settings.seen_set_cap)
        self.store.save_seen_set(feed_url, seen)

        subscription = Subscription(
            feed_url=feed_url,
            title=snapshot.title or feed_url,
            added_at=self._clock(),
            last_fetched_at=0.0,
        )
        self.store.save_subscriptions(subscriber_id, [*subscriptions, subscription])

        log.info(
            "subscribed",
            subscriber_id=subscriber_id,
            url=feed_url,
            title=subscription.title,
            seen=len(seen),
        )
        return subscription

    def unsubscribe(self, subscriber_id: str, feed_url: str) -> Subscription:
        """Remove a subscription. The feed's seen-set is kept for re-subscribers.

        Raises:
            SubscriptionError: If the subscriber does not follow the feed.
        """
        feed_url = feed_url.strip()
        subscriptions = self.store.list_subscriptions(subscriber_id)

        removed = next((sub for sub in subscriptions if sub.feed_url == feed_url), None)
        if removed is None:
            log.info("unsubscribe_not_found", subscriber_id=subscriber_id, url=feed_url)
            raise SubscriptionError(f"Not subscribed to {feed_url}")

        remaining = [sub for sub in subscriptions if sub.feed_url != feed_url]
        self.store.save_subscriptions(subscriber_id, remaining)

        log.info("unsubscribed", subscriber_id=subscriber_id, url=feed_url)
        return removed

    def list_subscriptions(self, subscriber_id: str) -> list[Subscription]:
        """List subscriptions, served from the read-through cache."""
        return self.store.list_subscriptions(subscriber_id, cached=True)

    def export_opml(self, subscriber_id: str) -> str:
        """Export a subscriber's feeds as an OPML 1.0 document.

        Raises:
            SubscriptionError: If there is nothing to export.
        """
        subscriptions = self.list_subscriptions(subscriber_id)
        if not subscriptions:
            raise SubscriptionError("No subscriptions to export")

        root = ET.Element("opml", version="1.0")
        head = ET.SubElement(root, "head")
        ET.SubElement(head, "title").text = "Feed subscriptions"
        body = ET.SubElement(root, "body")
        for sub in subscriptions:
            ET.SubElement(
                body,
                "outline",
                type="rss",
                text=sub.display_title,
                title=sub.display_title,
                xmlUrl=sub.feed_url,
            )

        ET.indent(root)
        log.info("opml_exported", subscriber_id=subscriber_id, feeds=len(subscriptions))
        return OPML_DECLARATION + ET.tostring(root, encoding="unicode")

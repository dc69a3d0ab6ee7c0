# ABOUTME: Update engine: one best-effort sweep over all subscribers per trigger tick.
# ABOUTME: Applies the minimum-interval gate, fetches, deduplicates and dispatches notifications.

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, fields

import structlog

from feed_relay.config import Settings, get_settings
from feed_relay.exceptions import DeliveryError, FetchError, StoreError
from feed_relay.feeds.dedup import diff
from feed_relay.feeds.fetcher import FeedFetcher
from feed_relay.models import Entry, FeedSnapshot, Subscription
from feed_relay.notify.dispatcher import NotificationDispatcher
from feed_relay.storage.subscriptions import SubscriptionStore

log = structlog.get_logger()


@dataclass
class RunSummary:
    """Counters describing one sweep."""

    skipped: bool = False
    subscribers: int = 0
    deferred: int = 0
    checked: int = 0
    not_due: int = 0
    fetch_failures: int = 0
    new_entries: int = 0
    notifications_sent: int = 0
    notification_failures: int = 0
    store_failures: int = 0

    def merge(self, other: "RunSummary") -> None:
        for field in fields(self):
            if field.name != "skipped":
                setattr(self, field.name, getattr(self, field.name) + getattr(other, field.name))


class UpdateScheduler:
    """Checks every subscription for new entries and notifies subscribers.

    Subscribers are spread over a bounded thread pool, one worker per
    subscriber, so a subscriber's list has a single writer. Seen-sets are
    shared by all subscribers of a feed and are updated under a per-feed lock.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        fetcher: FeedFetcher,
        dispatcher: NotificationDispatcher,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self._clock = clock
        self._monotonic = monotonic
        self._run_lock = threading.Lock()
        self._feed_locks: dict[str, threading.Lock] = {}
        self._feed_locks_guard = threading.Lock()

    def run_once(self) -> RunSummary:
        """Run one sweep. Overlapping calls return immediately with skipped=True."""
        if not self._run_lock.acquire(blocking=False):
            log.warning("run_skipped_overlap")
            return RunSummary(skipped=True)
        try:
            return self._run()
        finally:
            self._run_lock.release()

    def _run(self) -> RunSummary:
        started = self._monotonic()
        summary = RunSummary()

        try:
            subscriber_ids = self.store.list_all_subscriber_ids()
        except StoreError as e:
            log.error("run_list_subscribers_failed", error=str(e))
            summary.store_failures += 1
            return summary

        log.info("run_started", subscribers=len(subscriber_ids))

        workers = max(1, self.settings.max_concurrent_fetches)
        try:
            with ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="feed-relay"
            ) as executor:
                futures = [
                    executor.submit(self._process_subscriber, subscriber_id, started)
                    for subscriber_id in subscriber_ids
                ]
                for future in futures:
                    summary.merge(future.result())
        finally:
            # Workers are done; locks only live for the duration of one sweep.
            with self._feed_locks_guard:
                self._feed_locks.clear()

        log.info("run_complete", **asdict(summary))
        return summary

    def _process_subscriber(self, subscriber_id: str, started: float) -> RunSummary:
        result = RunSummary()

        # Never interrupt a subscriber midway; defer whole subscribers instead.
        if self._monotonic() - started >= self.settings.run_soft_deadline:
            log.warning("subscriber_deferred", subscriber_id=subscriber_id)
            result.deferred = 1
            return result

        try:
            self._check_subscriber(subscriber_id, result)
        except Exception:
            log.exception("subscriber_check_failed", subscriber_id=subscriber_id)
        return result

    def _check_subscriber(self, subscriber_id: str, result: RunSummary) -> None:
        try:
            subscriptions = self.store.list_subscriptions(subscriber_id)
        except StoreError as e:
            log.error("subscriptions_load_failed", subscriber_id=subscriber_id, error=str(e))
            result.store_failures += 1
            return

        result.subscribers = 1
        updated = [self._check_subscription(subscriber_id, sub, result) for sub in subscriptions]

        if all(new is old for new, old in zip(updated, subscriptions, strict=True)):
            return

        try:
            self.store.save_subscriptions(subscriber_id, updated)
        except StoreError as e:
            # Lost for this tick; the interval gate lets the check happen again.
            log.error("subscriptions_save_failed", subscriber_id=subscriber_id, error=str(e))
            result.store_failures += 1

    def _check_subscription(
        self, subscriber_id: str, subscription: Subscription, result: RunSummary
    ) -> Subscription:
        """Poll one subscription and return its (possibly updated) record."""
        now = self._clock()
        if now - subscription.last_fetched_at < self.settings.min_fetch_interval:
            result.not_due += 1
            return subscription

        # Advanced even if the fetch fails, limiting a broken feed to one try per interval.
        subscription = subscription.model_copy(update={"last_fetched_at": now})
        result.checked += 1

        try:
            snapshot = self.fetcher.fetch(subscription.feed_url)
        except FetchError as e:
            log.warning(
                "feed_fetch_failed",
                subscriber_id=subscriber_id,
                url=subscription.feed_url,
                error_type=type(e).__name__,
                error=str(e),
            )
            result.fetch_failures += 1
            return subscription

        try:
            new_entries = self._record_seen(subscription.feed_url, snapshot)
        except StoreError as e:
            log.error("seen_set_update_failed", url=subscription.feed_url, error=str(e))
            result.store_failures += 1
            return subscription

        if new_entries:
            log.info(
                "new_entries_found",
                subscriber_id=subscriber_id,
                url=subscription.feed_url,
                count=len(new_entries),
            )
        result.new_entries += len(new_entries)

        # Entries are already marked seen: a failed delivery is not retried.
        for entry in new_entries:
            try:
                self.dispatcher.notify(subscriber_id, subscription, entry)
                result.notifications_sent += 1
            except DeliveryError as e:
                log.warning(
                    "notification_failed",
                    subscriber_id=subscriber_id,
                    url=subscription.feed_url,
                    error=str(e),
                )
                result.notification_failures += 1

        return subscription

    def _record_seen(self, feed_url: str, snapshot: FeedSnapshot) -> list[Entry]:
        with self._feed_lock(feed_url):
            seen = self.store.get_seen_set(feed_url)
            new_entries, updated_seen = diff(seen, snapshot, cap=self.settings.seen_set_cap)
            if new_entries:
                self.store.save_seen_set(feed_url, updated_seen)
        return new_entries

    def _feed_lock(self, feed_url: str) -> threading.Lock:
        with self._feed_locks_guard:
            return self._feed_locks.setdefault(feed_url, threading.Lock())

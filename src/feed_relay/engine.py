# ABOUTME: Wires the store, fetcher, transport, dispatcher, scheduler and service together.
# ABOUTME: Used by the CLI and the web trigger; closes HTTP clients on exit.

import structlog

from feed_relay.config import Settings, get_settings
from feed_relay.feeds.fetcher import FeedFetcher
from feed_relay.notify.dispatcher import NotificationDispatcher
from feed_relay.notify.telegram import MessageTransport, TelegramTransport
from feed_relay.scheduler import UpdateScheduler
from feed_relay.services.subscription_service import SubscriptionService
from feed_relay.storage.kv import FileKeyValueStore, KeyValueStore
from feed_relay.storage.subscriptions import SubscriptionStore

log = structlog.get_logger()


class FeedRelay:
    """Fully assembled update engine."""

    def __init__(
        self,
        settings: Settings | None = None,
        kv: KeyValueStore | None = None,
        fetcher: FeedFetcher | None = None,
        transport: MessageTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.kv = kv if kv is not None else FileKeyValueStore(self.settings.store_dir)
        self.store = SubscriptionStore(self.kv, self.settings)
        self.fetcher = fetcher or FeedFetcher(self.settings)
        self.transport = transport or TelegramTransport(self.settings)
        self.dispatcher = NotificationDispatcher(self.transport, self.settings)
        self.scheduler = UpdateScheduler(self.store, self.fetcher, self.dispatcher, self.settings)
        self.subscriptions = SubscriptionService(self.store, self.fetcher, self.settings)

    def close(self) -> None:
        self.fetcher.close()
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()
        log.debug("feed_relay_closed")

    def __enter__(self) -> "FeedRelay":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

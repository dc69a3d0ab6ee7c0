# ABOUTME: Subscription store facade over the key-value collaborator.
# ABOUTME: Full-list read/replace of subscriptions and seen-sets, with a read-through cache.

import json
import time
from collections.abc import Callable, Sequence
from urllib.parse import quote

import structlog
from pydantic import TypeAdapter, ValidationError

from feed_relay.config import Settings, get_settings
from feed_relay.exceptions import StoreError
from feed_relay.models import Subscription
from feed_relay.storage.cache import TTLCache
from feed_relay.storage.kv import KeyValueStore

log = structlog.get_logger()

SUBSCRIBER_PREFIX = "subscriber:"
FEED_PREFIX = "feed:"

_subscription_list = TypeAdapter(list[Subscription])
_fingerprint_list = TypeAdapter(list[str])


def subscriber_key(subscriber_id: str) -> str:
    return f"{SUBSCRIBER_PREFIX}{subscriber_id}"


def feed_key(feed_url: str) -> str:
    return f"{FEED_PREFIX}{quote(feed_url, safe='')}"


class SubscriptionStore:
    """Reads and replaces whole subscription lists and seen-sets.

    There is no partial update API: callers read a list, change it in
    memory and write the entire list back.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.kv = kv
        self.settings = settings or get_settings()
        self.cache: TTLCache[tuple[Subscription, ...]] = TTLCache(
            ttl=self.settings.subscription_cache_ttl,
            max_entries=self.settings.subscription_cache_max_entries,
            clock=clock,
        )

    def list_subscriptions(self, subscriber_id: str, cached: bool = False) -> list[Subscription]:
        """Load a subscriber's subscriptions.

        Args:
            subscriber_id: Individual or group identifier.
            cached: Serve from the read-through cache when possible. The
                update engine always reads the authoritative store.

        Returns:
            Fresh copies of the subscriptions, empty if none are stored.
        """
        key = subscriber_key(subscriber_id)

        if cached:
            hit = self.cache.get(key)
            if hit is not None:
                log.debug("subscription_cache_hit", subscriber_id=subscriber_id)
                return [sub.model_copy() for sub in hit]

        raw = self._get(key)
        subscriptions = [] if raw is None else self._decode(key, raw, _subscription_list)

        if cached:
            self.cache.set(key, tuple(sub.model_copy() for sub in subscriptions))
        return subscriptions

    def save_subscriptions(self, subscriber_id: str, subscriptions: Sequence[Subscription]) -> None:
        """Replace a subscriber's full subscription list."""
        key = subscriber_key(subscriber_id)
        # Invalidate first so a failed write cannot leave a stale cached list.
        self.cache.invalidate(key)
        payload = _subscription_list.dump_json(list(subscriptions))
        self._put(key, payload)
        log.debug("subscriptions_saved", subscriber_id=subscriber_id, count=len(subscriptions))

    def list_all_subscriber_ids(self) -> list[str]:
        try:
            keys = self.kv.list_keys(SUBSCRIBER_PREFIX)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(SUBSCRIBER_PREFIX, str(e)) from e
        return [key[len(SUBSCRIBER_PREFIX) :] for key in keys]

    def get_seen_set(self, feed_url: str) -> list[str]:
        key = feed_key(feed_url)
        raw = self._get(key)
        return [] if raw is None else self._decode(key, raw, _fingerprint_list)

    def save_seen_set(self, feed_url: str, fingerprints: Sequence[str]) -> None:
        key = feed_key(feed_url)
        self._put(key, json.dumps(list(fingerprints), ensure_ascii=False).encode("utf-8"))
        log.debug("seen_set_saved", feed_url=feed_url, count=len(fingerprints))

    def _get(self, key: str) -> bytes | None:
        try:
            return self.kv.get(key)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(key, str(e)) from e

    def _put(self, key: str, value: bytes) -> None:
        try:
            self.kv.put(key, value)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(key, str(e)) from e

    @staticmethod
    def _decode(key: str, raw: bytes, adapter: TypeAdapter) -> list:
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            log.error("store_payload_invalid", key=key, error=str(e))
            raise StoreError(key, "undecodable payload") from e

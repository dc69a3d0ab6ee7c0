# ABOUTME: Storage module for the key-value collaborator and the subscription facade.
# ABOUTME: Exports stores and the TTL cache.

from feed_relay.storage.cache import TTLCache
from feed_relay.storage.kv import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from feed_relay.storage.subscriptions import SubscriptionStore

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SubscriptionStore",
    "TTLCache",
]

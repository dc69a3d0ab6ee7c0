# ABOUTME: Main package for the FeedRelay feed update engine.
# ABOUTME: Exports configuration, models and the assembled engine.

from feed_relay.config import get_settings
from feed_relay.engine import FeedRelay
from feed_relay.models import Entry, FeedSnapshot, Subscription

__all__ = [
    "get_settings",
    "Entry",
    "FeedRelay",
    "FeedSnapshot",
    "Subscription",
]

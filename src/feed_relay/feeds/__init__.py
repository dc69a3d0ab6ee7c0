# ABOUTME: Feed processing module for fetching, parsing and deduplicating entries.
# ABOUTME: Exposes the fetcher and the seen-set helpers.

from feed_relay.feeds.dedup import diff, fingerprint, trim
from feed_relay.feeds.fetcher import FeedFetcher

__all__ = ["FeedFetcher", "diff", "fingerprint", "trim"]

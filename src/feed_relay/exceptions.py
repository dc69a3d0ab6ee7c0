# ABOUTME: Error taxonomy for fetching, storage and delivery failures.
# ABOUTME: Components translate library exceptions into these at their boundary.


class FeedRelayError(Exception):
    """Base class for all feed relay errors."""


class FetchError(FeedRelayError):
    """A feed could not be retrieved or parsed."""


class InvalidURLError(FetchError):
    """The feed URL is not a syntactically valid absolute URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid feed URL: {url!r}")


class NetworkError(FetchError):
    """Transport-level failure (DNS, connection reset, TLS, ...)."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Network error: {detail}")


class FetchTimeoutError(FetchError):
    """The remote server did not answer within the per-attempt timeout."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"Timed out fetching feed{': ' + detail if detail else ''}")


class HTTPStatusError(FetchError):
    """The remote server answered with a non-2xx status."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP status {status_code}")


class TooLargeError(FetchError):
    """The feed body exceeds the configured size cap."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Feed too large: {size} bytes (limit {limit})")


class InvalidFeedError(FetchError):
    """The body could not be parsed as a feed, or it has no entries."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid feed: {detail}")


class StoreError(FeedRelayError):
    """The key-value store failed to read or write a key."""

    def __init__(self, key: str, detail: str) -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Store error for {key!r}: {detail}")


class DeliveryError(FeedRelayError):
    """A notification could not be handed to the messaging transport."""

    def __init__(self, destination: str, detail: str) -> None:
        self.destination = destination
        self.detail = detail
        super().__init__(f"Delivery to {destination} failed: {detail}")


class SubscriptionError(FeedRelayError):
    """A subscription management request was rejected."""

# ABOUTME: Services module initialization.
# ABOUTME: Exports subscription management.

from feed_relay.services.subscription_service import SubscriptionService

__all__ = ["SubscriptionService"]

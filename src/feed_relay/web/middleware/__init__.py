# ABOUTME: Request verification helpers for the web trigger.
# ABOUTME: Exports the bearer token dependency.

from feed_relay.web.middleware.token import TriggerVerified, verify_trigger_token

__all__ = ["TriggerVerified", "verify_trigger_token"]

# ABOUTME: Notification module: message formatting, dispatch and the Telegram transport.
# ABOUTME: Exports the dispatcher and transport implementations.

from feed_relay.notify.dispatcher import NotificationDispatcher, format_entry_message
from feed_relay.notify.telegram import MessageTransport, TelegramTransport

__all__ = [
    "MessageTransport",
    "NotificationDispatcher",
    "TelegramTransport",
    "format_entry_message",
]

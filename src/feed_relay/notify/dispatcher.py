# ABOUTME: Formats new feed entries and hands them to the messaging transport.
# ABOUTME: One message per entry, one delivery attempt, no retry.

from datetime import UTC
from html import escape

import structlog

from feed_relay.config import Settings, get_settings
from feed_relay.exceptions import DeliveryError
from feed_relay.models import Entry, MessageFormat, Subscription
from feed_relay.notify.telegram import MessageTransport

log = structlog.get_logger()

ELLIPSIS = "..."
PUBLISHED_FORMAT = "%Y-%m-%d %H:%M UTC"


def truncate(text: str, max_chars: int) -> str:
    """Cut text to `max_chars` characters, marking the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + ELLIPSIS


def format_entry_message(feed_title: str, entry: Entry, preview_max_chars: int = 200) -> str:
    """Render an entry as Telegram HTML.

    Only bold, italic and links are used; every interpolated value is escaped.
    """
    lines = [f"<b>{escape(entry.title or 'Untitled')}</b>", ""]
    lines.append(f"<i>From: {escape(feed_title)}</i>")
    if entry.author_name:
        lines.append(f"<i>Author: {escape(entry.author_name)}</i>")
    if entry.published_at:
        published = entry.published_at
        if published.tzinfo is not None:
            published = published.astimezone(UTC)
        lines.append(f"<i>Published: {published.strftime(PUBLISHED_FORMAT)}</i>")

    if entry.description:
        lines.extend(["", escape(truncate(entry.description, preview_max_chars))])

    if entry.link:
        lines.extend(["", f'<a href="{escape(entry.link, quote=True)}">Read more</a>'])

    return "\n".join(lines)


class NotificationDispatcher:
    """Delivers new-entry notifications to subscribers."""

    def __init__(self, transport: MessageTransport, settings: Settings | None = None) -> None:
        self.transport = transport
        self.settings = settings or get_settings()

    def notify(self, destination: str, subscription: Subscription, entry: Entry) -> None:
        """Send one notification for one entry.

        Raises:
            DeliveryError: If the transport fails or rejects the message.
        """
        text = format_entry_message(
            subscription.display_title,
            entry,
            preview_max_chars=self.settings.preview_max_chars,
        )

        try:
            result = self.transport.send(destination, text, MessageFormat.HTML)
        except Exception as e:
            raise DeliveryError(destination, str(e) or type(e).__name__) from e

        if not result.ok:
            raise DeliveryError(destination, result.description or "rejected by transport")

        log.info(
            "notification_sent",
            destination=destination,
            feed_url=subscription.feed_url,
            entry=entry.link or entry.title,
        )

# ABOUTME: Messaging transport collaborator backed by the Telegram Bot API.
# ABOUTME: Sends HTML-formatted text to a user or group chat over httpx.

from typing import Protocol

import httpx
import structlog

from feed_relay.config import Settings, get_settings
from feed_relay.models import DeliveryResult, MessageFormat

log = structlog.get_logger()


class MessageTransport(Protocol):
    """Generic "send a message to a destination" capability."""

    def send(self, destination: str, text: str, formatting: MessageFormat) -> DeliveryResult: ...


class TelegramTransport:
    """Delivers messages through the Telegram Bot API."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized HTTP client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.telegram_timeout)
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "TelegramTransport":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def send_message_url(self) -> str:
        if not self.settings.telegram_bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")
        token = self.settings.telegram_bot_token.get_secret_value()
        return f"{self.settings.telegram_api_url.rstrip('/')}/bot{token}/sendMessage"

    def send(
        self,
        destination: str,
        text: str,
        formatting: MessageFormat = MessageFormat.HTML,
    ) -> DeliveryResult:
        """Send a message to a chat.

        Args:
            destination: Chat ID of a user or group (groups are negative IDs).
            text: Message body.
            formatting: HTML for the bold/italic/link subset, or PLAIN.

        Returns:
            DeliveryResult; transport failures are reported, not raised.
        """
        body: dict[str, object] = {
            "chat_id": destination,
            "text": text,
            "disable_web_page_preview": True,
        }
        if formatting is MessageFormat.HTML:
            body["parse_mode"] = "HTML"

        try:
            response = self.client.post(self.send_message_url, json=body)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            log.error("telegram_send_failed", chat_id=destination, error=str(e))
            return DeliveryResult(ok=False, description=str(e) or type(e).__name__)

        if not data.get("ok"):
            description = data.get("description") or f"HTTP {response.status_code}"
            log.warning("telegram_send_rejected", chat_id=destination, description=description)
            return DeliveryResult(ok=False, description=description)

        return DeliveryResult(ok=True)

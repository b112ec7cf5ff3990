"""WhatsApp gateway: WhatsApp Business Cloud API via httpx."""

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from src.core.config import settings
from src.gateway.types import IncomingMessage, MessageType, OutgoingMessage

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096


class WhatsAppGateway:
    """Gateway for WhatsApp Business Cloud API."""

    BASE_URL = "https://graph.facebook.com/v21.0"

    def __init__(
        self,
        api_token: str = "",
        phone_number_id: str = "",
        verify_token: str = "",
    ) -> None:
        self._api_token = api_token or settings.whatsapp_api_token
        self._phone_id = phone_number_id or settings.whatsapp_phone_number_id
        self._verify_token = verify_token or settings.whatsapp_verify_token
        self._client: httpx.AsyncClient | None = None
        self._handler: Callable[[IncomingMessage], Awaitable[None]] | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._api_token and self._phone_id)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers={"Authorization": f"Bearer {self._api_token}"},
                timeout=10.0,
            )
        return self._client

    def on_message(self, handler: Callable[[IncomingMessage], Awaitable[None]]) -> None:
        self._handler = handler

    # ------------------------------------------------------------------
    # Webhook verification (GET endpoint)
    # ------------------------------------------------------------------
    def verify_webhook(self, mode: str, token: str, challenge: str) -> str | None:
        """Verify WhatsApp webhook subscription. Returns challenge on success."""
        if mode == "subscribe" and token == self._verify_token:
            return challenge
        return None

    # ------------------------------------------------------------------
    # Inbound: parse webhook payload
    # ------------------------------------------------------------------
    def parse_webhook(self, payload: dict[str, Any]) -> IncomingMessage | None:
        """Parse WhatsApp Cloud API webhook into IncomingMessage.

        Returns None for status updates and empty payloads. Documents keep
        their media reference; audio arrives as ``voice`` with no text,
        since transcription happens upstream.
        """
        entries = payload.get("entry", [])
        if not entries:
            return None

        changes = entries[0].get("changes", [])
        if not changes:
            return None

        value = changes[0].get("value", {})
        messages = value.get("messages", [])
        if not messages:
            return None

        msg = messages[0]
        msg_type = msg.get("type", "")
        sender = msg.get("from", "")
        contacts = value.get("contacts") or [{}]
        user_name = contacts[0].get("profile", {}).get("name")

        message = IncomingMessage(
            id=msg.get("id", ""),
            user_id=sender,
            chat_id=sender,
            type=MessageType.unsupported,
            channel="whatsapp",
            channel_user_id=sender,
            user_name=user_name,
            raw=msg,
        )

        if msg_type == "text":
            message.type = MessageType.text
            message.text = msg.get("text", {}).get("body", "")
        elif msg_type == "document":
            doc = msg.get("document", {})
            message.type = MessageType.document
            message.document_id = doc.get("id")
            message.document_url = doc.get("url")
            message.document_mime_type = doc.get("mime_type")
            message.document_file_name = doc.get("filename")
            message.text = doc.get("caption")
        elif msg_type in ("audio", "voice"):
            message.type = MessageType.voice
        elif msg_type == "interactive":
            reply = msg.get("interactive", {})
            chosen = reply.get("button_reply") or reply.get("list_reply") or {}
            message.type = MessageType.text
            message.text = chosen.get("title", "")

        return message

    async def feed_update(self, payload: dict[str, Any]) -> None:
        """Parse a webhook payload and pass the message to the registered handler."""
        message = self.parse_webhook(payload)
        if message is None:
            return
        if self._handler is None:
            logger.warning("WhatsApp message %s dropped, no handler registered", message.id)
            return
        await self._handler(message)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    async def send(self, message: OutgoingMessage) -> None:
        """Send a text message via WhatsApp Cloud API."""
        client = await self._get_client()

        text = self._strip_html(message.text or "")
        if len(text) > MAX_TEXT_LENGTH:
            text = text[: MAX_TEXT_LENGTH - 6] + "\n..."

        payload = {
            "messaging_product": "whatsapp",
            "to": message.chat_id,
            "type": "text",
            "text": {"body": text},
        }

        resp = await client.post(f"/{self._phone_id}/messages", json=payload)
        if resp.status_code != 200:
            logger.error("WhatsApp send failed: %s %s", resp.status_code, resp.text[:200])

    @staticmethod
    def _strip_html(text: str) -> str:
        """Remove HTML tags, keeping inner text."""
        return re.sub(r"<[^>]+>", "", text)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

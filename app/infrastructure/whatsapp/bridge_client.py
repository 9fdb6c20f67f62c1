"""WhatsApp transport backed by a whatsapp-web.js bridge sidecar.

The sidecar owns the browser session and exposes it over HTTP. Commands go
out through the REST endpoints below; session and message events come back as
webhook POSTs to /api/v1/whatsapp/webhook, which hands them to
`dispatch_webhook`.
"""

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from app.infrastructure.whatsapp.base import (
    EVENT_AUTH_FAILURE,
    EVENT_AUTHENTICATED,
    EVENT_DISCONNECTED,
    EVENT_MESSAGE,
    EVENT_MESSAGE_CREATE,
    EVENT_QR,
    EVENT_READY,
    ChatInfo,
    ChatMessage,
    ContactInfo,
    InboundMessage,
    MediaDownloadFailed,
    MediaPayload,
    MessageCreated,
    SessionIdentity,
    TransportError,
    WhatsAppTransport,
)

logger = logging.getLogger(__name__)


class BridgeTransport(WhatsAppTransport):
    """WhatsAppTransport speaking to the bridge's REST API."""

    def __init__(
        self,
        base_url: str,
        session_name: str = "default",
        api_key: str | None = None,
        webhook_url: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize bridge transport.

        Args:
            base_url: Bridge base URL (e.g. http://localhost:3000)
            session_name: Bridge session to drive
            api_key: Optional bridge API key (sent as X-Api-Key)
            webhook_url: Where the bridge should POST events
            timeout: HTTP timeout in seconds
        """
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.session_name = session_name
        self.api_key = api_key
        self.webhook_url = webhook_url
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Create HTTP client with auth headers."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/sessions/{quote(self.session_name, safe='')}",
            headers=headers,
            timeout=self.timeout,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            async with self._get_client() as client:
                response = await client.request(method, path, **kwargs)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                if not response.content:
                    return None
                try:
                    return response.json()
                except ValueError as e:
                    raise TransportError(
                        f"Bridge {method} {path} returned a non-JSON body: {response.text[:200]}"
                    ) from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Bridge {method} {path} returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Bridge {method} {path} failed: {e}") from e

    # Commands

    async def start(self) -> None:
        payload: dict[str, Any] = {}
        if self.webhook_url:
            payload["webhookUrl"] = self.webhook_url
        await self._request("POST", "/start", json=payload)

    async def logout(self) -> None:
        await self._request("POST", "/logout")

    async def get_number_id(self, dialable_phone: str) -> str | None:
        data = await self._request("GET", f"/number-id/{quote(dialable_phone, safe='')}")
        if not data:
            return None
        number_id = data.get("numberId") if isinstance(data, dict) else None
        if isinstance(number_id, dict):
            return number_id.get("_serialized") or None
        return number_id or None

    async def send_message(self, chat_id: str, text: str) -> str | None:
        data = await self._request(
            "POST",
            "/messages",
            json={"chatId": chat_id, "text": text, "sendSeen": False},
        )
        if isinstance(data, dict):
            message_id = data.get("id")
            if isinstance(message_id, dict):
                return message_id.get("_serialized")
            return message_id
        return None

    async def get_chat(self, chat_id: str) -> ChatInfo | None:
        data = await self._request("GET", f"/chats/{quote(chat_id, safe='')}")
        return ChatInfo.from_payload(data) if isinstance(data, dict) else None

    async def get_message_contact(self, message: ChatMessage) -> ContactInfo | None:
        data = await self._request(
            "GET", f"/messages/{quote(message.message_id, safe='')}/contact"
        )
        return ContactInfo.from_payload(data) if isinstance(data, dict) else None

    async def download_media(self, message: ChatMessage) -> MediaPayload:
        try:
            data = await self._request(
                "GET", f"/messages/{quote(message.message_id, safe='')}/media"
            )
        except TransportError as e:
            raise MediaDownloadFailed(message.message_id, str(e)) from e

        if not isinstance(data, dict) or not data.get("data"):
            raise MediaDownloadFailed(message.message_id, "no media data returned")
        try:
            content = base64.b64decode(data["data"])
        except (ValueError, TypeError) as e:
            raise MediaDownloadFailed(message.message_id, f"invalid base64: {e}") from e

        return MediaPayload(
            data=content,
            mimetype=data.get("mimetype") or message.media_mimetype or "application/octet-stream",
            filename=data.get("filename"),
        )

    async def get_chats(self) -> list[ChatInfo]:
        data = await self._request("GET", "/chats")
        if not isinstance(data, list):
            return []
        return [ChatInfo.from_payload(item) for item in data if isinstance(item, dict)]

    # Events

    async def dispatch_webhook(self, event: str, data: Any) -> list[Any]:
        """Convert a bridge webhook body into a typed event and emit it.

        Args:
            event: Event name (qr, ready, message, message_create, ...)
            data: Event payload as sent by the bridge

        Returns:
            Listener results

        Raises:
            ValueError: If a message payload is malformed
        """
        if event == EVENT_QR:
            payload: Any = data.get("qr") if isinstance(data, dict) else data
        elif event == EVENT_READY:
            info = data if isinstance(data, dict) else {}
            wid = info.get("wid") or {}
            payload = SessionIdentity(
                phone_number=(wid.get("user") if isinstance(wid, dict) else None) or info.get("phoneNumber"),
                name=info.get("pushname") or info.get("name"),
            )
        elif event in (EVENT_AUTH_FAILURE, EVENT_DISCONNECTED):
            payload = data.get("reason") if isinstance(data, dict) else data
        elif event == EVENT_AUTHENTICATED:
            payload = None
        elif event == EVENT_MESSAGE:
            payload = InboundMessage.from_payload(data or {})
        elif event == EVENT_MESSAGE_CREATE:
            payload = MessageCreated.from_payload(data or {})
        else:
            logger.debug(f"Ignoring unknown bridge event {event}")
            return []

        return await self.emit(event, payload)

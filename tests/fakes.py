"""Test doubles for the WhatsApp transport."""

from typing import Any

from app.infrastructure.whatsapp.base import (
    ChatInfo,
    ChatMessage,
    ContactInfo,
    MediaDownloadFailed,
    MediaPayload,
    WhatsAppTransport,
)


class FakeTransport(WhatsAppTransport):
    """In-memory transport.

    Populate `chats`, `message_contacts`, `media` and `registered` to script
    what the transport reports.
    """

    def __init__(self) -> None:
        super().__init__()
        self.started = False
        self.logged_out = False
        self.chats: dict[str, ChatInfo] = {}
        self.message_contacts: dict[str, ContactInfo] = {}
        self.media: dict[str, MediaPayload] = {}
        self.registered: dict[str, str] = {}
        self.sent: list[tuple[str, str]] = []

    async def start(self) -> None:
        self.started = True

    async def logout(self) -> None:
        self.logged_out = True

    async def get_number_id(self, dialable_phone: str) -> str | None:
        return self.registered.get(dialable_phone)

    async def send_message(self, chat_id: str, text: str) -> str | None:
        self.sent.append((chat_id, text))
        return f"true_{chat_id}_{len(self.sent)}"

    async def get_chat(self, chat_id: str) -> ChatInfo | None:
        return self.chats.get(chat_id)

    async def get_message_contact(self, message: ChatMessage) -> ContactInfo | None:
        return self.message_contacts.get(message.message_id)

    async def download_media(self, message: ChatMessage) -> MediaPayload:
        if message.message_id not in self.media:
            raise MediaDownloadFailed(message.message_id, "media expired")
        return self.media[message.message_id]

    async def get_chats(self) -> list[ChatInfo]:
        return list(self.chats.values())


def make_payload(
    message_id: str,
    from_id: str,
    to_id: str,
    from_me: bool,
    body: str = "hola",
    **extra: Any,
) -> dict[str, Any]:
    """A whatsapp-web.js Message as serialized by the bridge."""
    payload = {
        "id": {"_serialized": message_id},
        "from": from_id,
        "to": to_id,
        "fromMe": from_me,
        "body": body,
        "timestamp": 1760000000,
        "hasMedia": False,
        "type": "chat",
    }
    payload.update(extra)
    return payload

"""WhatsApp transport interface and the typed events it emits.

Raw transport payloads are turned into the dataclasses below at the boundary,
so nothing past this module inspects untyped dicts.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union

logger = logging.getLogger(__name__)

CONTACT_SUFFIX = "@c.us"
OPAQUE_ID_SUFFIX = "@lid"  # linked-device id, not a dialable number
GROUP_SUFFIX = "@g.us"
BROADCAST_SUFFIX = "@broadcast"
NEWSLETTER_SUFFIX = "@newsletter"

# Event names, as emitted by whatsapp-web.js
EVENT_QR = "qr"
EVENT_READY = "ready"
EVENT_AUTHENTICATED = "authenticated"
EVENT_AUTH_FAILURE = "auth_failure"
EVENT_DISCONNECTED = "disconnected"
EVENT_MESSAGE = "message"
EVENT_MESSAGE_CREATE = "message_create"

Listener = Callable[[Any], Awaitable[Any]]


class TransportError(Exception):
    """A call to the WhatsApp transport failed."""
    pass


class MediaDownloadFailed(TransportError):
    """Media attached to a message could not be downloaded."""

    def __init__(self, message_id: str, reason: str):
        self.message_id = message_id
        self.reason = reason
        super().__init__(f"Media download failed for {message_id}: {reason}")


def _timestamp_or_none(value: Any) -> int | None:
    """Epoch seconds as an int; bridges sometimes send them as strings."""
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def _serialized_id(value: Any) -> str:
    """whatsapp-web.js ids are either strings or {"_serialized": ...} objects."""
    if isinstance(value, dict):
        return str(value.get("_serialized") or "")
    return str(value or "")


@dataclass(frozen=True)
class ChatMessage:
    """A chat message as delivered by the transport."""

    message_id: str
    chat_id: str
    from_id: str
    to_id: str
    from_me: bool
    body: str = ""
    timestamp: int = 0  # seconds since epoch
    has_media: bool = False
    message_type: str = "chat"  # chat, image, sticker, ptt, document, ...
    media_mimetype: str | None = None
    author_name: str | None = None  # sender push name

    @property
    def is_group(self) -> bool:
        return self.chat_id.endswith(GROUP_SUFFIX) or self.from_id.endswith(GROUP_SUFFIX)

    @property
    def is_status(self) -> bool:
        ids = (self.chat_id, self.from_id, self.to_id)
        return any(i.endswith(BROADCAST_SUFFIX) or i.endswith(NEWSLETTER_SUFFIX) for i in ids)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]):
        """Build an event from a serialized whatsapp-web.js Message.

        Raises:
            ValueError: If the payload has no message id
        """
        message_id = _serialized_id(payload.get("id"))
        if not message_id:
            raise ValueError("Message payload without id")

        from_id = _serialized_id(payload.get("from"))
        to_id = _serialized_id(payload.get("to"))
        from_me = bool(payload.get("fromMe", False))
        chat_id = _serialized_id(payload.get("chatId")) or (to_id if from_me else from_id)
        raw_data = payload.get("_data") or {}

        return cls(
            message_id=message_id,
            chat_id=chat_id,
            from_id=from_id,
            to_id=to_id,
            from_me=from_me,
            body=payload.get("body") or "",
            timestamp=int(payload.get("timestamp") or 0),
            has_media=bool(payload.get("hasMedia", False)),
            message_type=payload.get("type") or "chat",
            media_mimetype=payload.get("mimetype") or raw_data.get("mimetype"),
            author_name=payload.get("notifyName") or raw_data.get("notifyName"),
        )


@dataclass(frozen=True)
class InboundMessage(ChatMessage):
    """`message` event: fires for messages received by the session."""

    kind: str = EVENT_MESSAGE


@dataclass(frozen=True)
class MessageCreated(ChatMessage):
    """`message_create` event: fires for every message, including our own."""

    kind: str = EVENT_MESSAGE_CREATE


TransportEvent = Union[InboundMessage, MessageCreated]


@dataclass(frozen=True)
class SessionIdentity:
    """The paired account."""

    phone_number: str | None
    name: str | None


@dataclass(frozen=True)
class ContactInfo:
    """A WhatsApp contact entity."""

    id: str
    number: str | None = None
    name: str | None = None
    pushname: str | None = None

    @property
    def display_name(self) -> str | None:
        return self.name or self.pushname

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ContactInfo":
        return cls(
            id=_serialized_id(payload.get("id")),
            number=payload.get("number") or None,
            name=payload.get("name") or None,
            pushname=payload.get("pushname") or None,
        )


@dataclass(frozen=True)
class ChatInfo:
    """A chat (conversation thread) on the transport."""

    id: str
    name: str | None = None
    is_group: bool = False
    unread_count: int = 0
    timestamp: int | None = None
    last_message: str | None = None
    contact: ContactInfo | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChatInfo":
        chat_id = _serialized_id(payload.get("id"))
        last_message = payload.get("lastMessage") or {}
        contact = payload.get("contact")
        return cls(
            id=chat_id,
            name=payload.get("name") or None,
            is_group=bool(payload.get("isGroup", chat_id.endswith(GROUP_SUFFIX))),
            unread_count=int(payload.get("unreadCount") or 0),
            timestamp=_timestamp_or_none(payload.get("timestamp")),
            last_message=last_message.get("body") if isinstance(last_message, dict) else None,
            contact=ContactInfo.from_payload(contact) if isinstance(contact, dict) else None,
        )


@dataclass(frozen=True)
class MediaPayload:
    """Downloaded message media."""

    data: bytes
    mimetype: str
    filename: str | None = None


@dataclass
class _ListenerRegistry:
    listeners: dict[str, list[Listener]] = field(default_factory=lambda: defaultdict(list))
    locks: dict[str, asyncio.Lock] = field(default_factory=dict)


class WhatsAppTransport(ABC):
    """A single WhatsApp Web session.

    Listeners for one event name run one event at a time, in delivery order;
    different event names are dispatched independently and may interleave.
    """

    def __init__(self) -> None:
        self._registry = _ListenerRegistry()

    def on(self, event: str, listener: Listener) -> None:
        """Register an async listener for an event name."""
        self._registry.listeners[event].append(listener)

    async def emit(self, event: str, payload: Any) -> list[Any]:
        """Dispatch an event to its listeners and wait for them to finish.

        Returns:
            Listener return values, in registration order
        """
        listeners = list(self._registry.listeners.get(event, ()))
        if not listeners:
            logger.debug(f"No listeners for WhatsApp event {event}")
            return []
        lock = self._registry.locks.setdefault(event, asyncio.Lock())
        async with lock:
            return [await listener(payload) for listener in listeners]

    @abstractmethod
    async def start(self) -> None:
        """Start (or resume) the session; pairing and readiness arrive as events."""
        pass

    @abstractmethod
    async def logout(self) -> None:
        """Log out and destroy the session."""
        pass

    @abstractmethod
    async def get_number_id(self, dialable_phone: str) -> str | None:
        """Resolve a dialable phone to a chat id, or None if not on WhatsApp."""
        pass

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> str | None:
        """Send a text message.

        Returns:
            Transport message id, if reported
        """
        pass

    @abstractmethod
    async def get_chat(self, chat_id: str) -> ChatInfo | None:
        """Fetch a chat with its associated contact."""
        pass

    @abstractmethod
    async def get_message_contact(self, message: ChatMessage) -> ContactInfo | None:
        """Contact accessor for a message.

        For outbound messages this returns the session owner, not the
        recipient.
        """
        pass

    @abstractmethod
    async def download_media(self, message: ChatMessage) -> MediaPayload:
        """Download the media attached to a message.

        Raises:
            MediaDownloadFailed: If the media is gone or the download fails
        """
        pass

    @abstractmethod
    async def get_chats(self) -> list[ChatInfo]:
        """List all chats."""
        pass

"""WhatsApp transport layer."""

from app.infrastructure.whatsapp.base import (
    ChatInfo,
    ChatMessage,
    ContactInfo,
    InboundMessage,
    MediaDownloadFailed,
    MediaPayload,
    MessageCreated,
    SessionIdentity,
    TransportError,
    TransportEvent,
    WhatsAppTransport,
)
from app.infrastructure.whatsapp.bridge_client import BridgeTransport
from app.infrastructure.whatsapp.factory import create_transport

__all__ = [
    "BridgeTransport",
    "ChatInfo",
    "ChatMessage",
    "ContactInfo",
    "InboundMessage",
    "MediaDownloadFailed",
    "MediaPayload",
    "MessageCreated",
    "SessionIdentity",
    "TransportError",
    "TransportEvent",
    "WhatsAppTransport",
    "create_transport",
]

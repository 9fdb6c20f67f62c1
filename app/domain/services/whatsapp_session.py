"""WhatsApp session lifecycle.

One SessionManager per process owns the single transport session:

    uninitialized -> initializing -> awaiting_pairing -> ready -> disconnected

`disconnected` is terminal until `initialize()` is called again; there is no
automatic reconnect.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from app.core.phone import digits_only, to_dialable
from app.domain.services.message_reconciler import MessageReconciler, strip_contact_suffix
from app.infrastructure.whatsapp.base import (
    EVENT_AUTH_FAILURE,
    EVENT_AUTHENTICATED,
    EVENT_DISCONNECTED,
    EVENT_QR,
    EVENT_READY,
    SessionIdentity,
    TransportError,
    WhatsAppTransport,
)
from app.infrastructure.whatsapp.bridge_client import BridgeTransport
from app.infrastructure.whatsapp.factory import create_transport
from app.settings import settings

logger = logging.getLogger(__name__)

NOT_CONNECTED_ERROR = "WhatsApp not connected"
UNREGISTERED_ERROR = "Number not registered on WhatsApp"


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AWAITING_PAIRING = "awaiting_pairing"
    READY = "ready"
    DISCONNECTED = "disconnected"


class NotConnected(Exception):
    """Send attempted while the session is not ready."""

    def __init__(self) -> None:
        super().__init__(NOT_CONNECTED_ERROR)


class UnregisteredRecipient(Exception):
    """The recipient number has no WhatsApp account."""

    def __init__(self, phone: str) -> None:
        self.phone = phone
        super().__init__(UNREGISTERED_ERROR)


@dataclass
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


def whatsapp_enabled() -> bool:
    """WhatsApp runs everywhere except production, where it must be switched on."""
    return settings.environment != "production" or settings.enable_whatsapp


class SessionManager:
    """Owns the transport session and exposes its lifecycle to the API."""

    def __init__(
        self,
        reconciler: MessageReconciler,
        transport_factory: Callable[..., WhatsAppTransport] = create_transport,
        webhook_url: str | None = None,
    ) -> None:
        """Initialize session manager.

        Args:
            reconciler: Handles message events for every session this manager creates
            transport_factory: Builds a fresh transport (called with webhook_url)
            webhook_url: URL the bridge should deliver events to
        """
        self.reconciler = reconciler
        self.transport_factory = transport_factory
        self.webhook_url = webhook_url
        self.transport: WhatsAppTransport | None = None
        self.state = SessionState.UNINITIALIZED
        self.qr_code: str | None = None
        self.identity: SessionIdentity | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY and self.transport is not None

    async def initialize(self) -> dict[str, Any]:
        """Create and start the session if none exists.

        Returns:
            Current status

        Raises:
            TransportError: If the session fails to start (state becomes disconnected)
        """
        if self.transport is not None:
            logger.info(f"WhatsApp session already exists ({self.state.value}), skipping init")
            return self.status()

        transport = self.transport_factory(webhook_url=self.webhook_url)
        transport.on(EVENT_QR, self._on_qr)
        transport.on(EVENT_READY, self._on_ready)
        transport.on(EVENT_AUTHENTICATED, self._on_authenticated)
        transport.on(EVENT_AUTH_FAILURE, self._on_auth_failure)
        transport.on(EVENT_DISCONNECTED, self._on_disconnected)
        self.reconciler.attach(transport)

        self.transport = transport
        self.state = SessionState.INITIALIZING
        self.qr_code = None
        self.identity = None
        logger.info("Initializing WhatsApp session", extra={"event_type": "wa_session_init"})

        try:
            await transport.start()
        except Exception as e:
            logger.error(
                f"WhatsApp session failed to start: {e}",
                exc_info=True,
                extra={"event_type": "wa_session_start_failed"},
            )
            self._teardown(SessionState.DISCONNECTED)
            raise
        return self.status()

    def status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "initialized": self.transport is not None,
            "ready": self.is_ready,
            "qr_code": self.qr_code if self.state is SessionState.AWAITING_PAIRING else None,
            "info": {
                "phone_number": self.identity.phone_number if self.identity else None,
                "name": self.identity.name if self.identity else None,
            },
        }

    async def send(self, phone: str, text: str) -> SendResult:
        """Send a text message to a phone number.

        The message itself is recorded by the reconciler when the transport
        reports it back as a `message_create` event.
        """
        try:
            message_id = await self._send(phone, text)
        except (NotConnected, UnregisteredRecipient, TransportError, ValueError) as e:
            logger.warning(
                f"WhatsApp send failed: {e}",
                extra={"event_type": "wa_send_failed", "phone_digits": len(digits_only(phone))},
            )
            return SendResult(success=False, error=str(e))
        return SendResult(success=True, message_id=message_id)

    async def _send(self, phone: str, text: str) -> str | None:
        if not self.is_ready:
            raise NotConnected()
        dialable = to_dialable(phone)
        if not dialable:
            raise ValueError("Invalid phone number")
        number_id = await self.transport.get_number_id(dialable)
        if not number_id:
            raise UnregisteredRecipient(dialable)
        message_id = await self.transport.send_message(number_id, text)
        logger.info("WhatsApp message sent", extra={"event_type": "wa_message_sent"})
        return message_id

    async def disconnect(self) -> None:
        """Log out and drop the session."""
        transport = self.transport
        if transport is not None:
            try:
                await transport.logout()
            except TransportError as e:
                logger.warning(f"WhatsApp logout failed, dropping session anyway: {e}")
        self._teardown(SessionState.UNINITIALIZED)
        logger.info("WhatsApp session disconnected", extra={"event_type": "wa_session_logout"})

    async def get_all_chats(self) -> list[dict[str, Any]]:
        """One-to-one chats on the paired account; empty when not ready."""
        if not self.is_ready:
            return []
        chats = await self.transport.get_chats()
        result = []
        for chat in chats:
            if chat.is_group:
                continue
            result.append({
                "phone": strip_contact_suffix(chat.id) or (chat.contact.number if chat.contact else None),
                "name": chat.name or (chat.contact.display_name if chat.contact else None),
                "last_message": chat.last_message,
                "last_message_time": (
                    datetime.fromtimestamp(chat.timestamp, tz=timezone.utc).isoformat()
                    if chat.timestamp else None
                ),
                "unread_count": chat.unread_count,
            })
        return result

    async def handle_webhook(self, event: str, data: Any) -> list[Any]:
        """Feed a bridge webhook delivery into the current session.

        Returns:
            Listener results (empty when there is no bridge session)
        """
        transport = self.transport
        if not isinstance(transport, BridgeTransport):
            logger.info(f"Dropping WhatsApp {event} webhook: no active bridge session")
            return []
        return await transport.dispatch_webhook(event, data)

    def _teardown(self, state: SessionState) -> None:
        self.transport = None
        self.state = state
        self.qr_code = None
        self.identity = None

    # Transport listeners

    async def _on_qr(self, qr: str) -> None:
        self.state = SessionState.AWAITING_PAIRING
        self.qr_code = qr
        logger.info("WhatsApp pairing code received", extra={"event_type": "wa_session_qr"})

    async def _on_ready(self, identity: SessionIdentity) -> None:
        self.state = SessionState.READY
        self.qr_code = None
        self.identity = identity
        logger.info(
            f"WhatsApp ready as {identity.name}",
            extra={"event_type": "wa_session_ready"},
        )

    async def _on_authenticated(self, _payload: Any) -> None:
        logger.info("WhatsApp authenticated", extra={"event_type": "wa_session_authenticated"})

    async def _on_auth_failure(self, reason: Any) -> None:
        self._teardown(SessionState.DISCONNECTED)
        logger.error(
            f"WhatsApp authentication failed: {reason}",
            extra={"event_type": "wa_session_auth_failure"},
        )

    async def _on_disconnected(self, reason: Any) -> None:
        self._teardown(SessionState.DISCONNECTED)
        logger.warning(
            f"WhatsApp disconnected: {reason}",
            extra={"event_type": "wa_session_disconnected"},
        )

"""Reconcile WhatsApp message events into conversation records.

whatsapp-web.js reports every message twice: inbound messages arrive on both
`message` and `message_create`, outbound ones (including those typed on the
phone or another linked device) only on `message_create`. `classify` splits
the two streams so each logical message is handled by exactly one handler:

    message         + fromMe=False  -> INBOUND
    message_create  + fromMe=True   -> OUTBOUND_BY_SELF
    anything else, groups, status   -> IGNORED

Outbound events may address the counterparty by an opaque linked-device id
(`...@lid`). The phone is then recovered from the chat's contact; the
message's own contact accessor returns the session owner for outbound
messages and must not be used.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from app.core.debug import wa_debug_log
from app.core.event_context import clear_event_context, set_event_context
from app.core.phone import UnresolvableIdentity, digits_only, is_plausible_phone
from app.domain.services.contact_resolver import ContactResolver
from app.infrastructure.media_storage import MediaStorage, StoredMedia, classify_media_kind
from app.infrastructure.redis import RedisClient, redis_client
from app.infrastructure.whatsapp.base import (
    CONTACT_SUFFIX,
    EVENT_MESSAGE,
    EVENT_MESSAGE_CREATE,
    OPAQUE_ID_SUFFIX,
    ChatMessage,
    InboundMessage,
    MessageCreated,
    TransportError,
    TransportEvent,
    WhatsAppTransport,
)
from app.persistence.store import ConversationStore
from app.settings import settings

logger = logging.getLogger(__name__)

DEDUP_KEY_PREFIX = "wa_msg_processed"


class Classification(str, Enum):
    """Which handler owns an event."""

    INBOUND = "inbound"
    OUTBOUND_BY_SELF = "outbound_by_self"
    IGNORED = "ignored"


DIRECTION_BY_CLASSIFICATION = {
    Classification.INBOUND: "entrante",
    Classification.OUTBOUND_BY_SELF: "saliente",
}


@dataclass
class ReconcileResult:
    """Outcome of handling one event."""

    status: str  # persisted, skipped, discarded, failed
    reason: str | None = None
    conversation_id: int | None = None
    contact_id: int | None = None
    contact_created: bool = False


def classify(event: TransportEvent) -> Classification:
    """Decide which handler owns an event. Pure; used by both entry points."""
    if event.is_status or event.is_group:
        return Classification.IGNORED
    if isinstance(event, InboundMessage):
        return Classification.IGNORED if event.from_me else Classification.INBOUND
    if isinstance(event, MessageCreated):
        return Classification.OUTBOUND_BY_SELF if event.from_me else Classification.IGNORED
    return Classification.IGNORED


def is_opaque_id(wa_id: str | None) -> bool:
    return bool(wa_id) and wa_id.endswith(OPAQUE_ID_SUFFIX)


def strip_contact_suffix(wa_id: str | None) -> str | None:
    """`5215512345678@c.us` -> `5215512345678`; opaque ids are not phones."""
    if not wa_id or is_opaque_id(wa_id):
        return None
    if wa_id.endswith(CONTACT_SUFFIX):
        return wa_id[: -len(CONTACT_SUFFIX)]
    return wa_id.split("@", 1)[0]


def _skip_reason(event: TransportEvent) -> str:
    if event.is_status:
        return "status_broadcast"
    if event.is_group:
        return "group_chat"
    if isinstance(event, InboundMessage):
        return "from_me_on_message_event"
    return "inbound_on_message_create_event"


class MessageReconciler:
    """Turns transport message events into Conversation rows."""

    def __init__(
        self,
        store: ConversationStore,
        resolver: ContactResolver | None = None,
        media_storage: MediaStorage | None = None,
        dedup: RedisClient | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            store: Persistence boundary
            resolver: Contact resolver (shared, it owns the per-phone locks)
            media_storage: Where downloaded media is written
            dedup: Redis client used to drop webhook redeliveries
        """
        self.store = store
        self.resolver = resolver or ContactResolver(store)
        self.media_storage = media_storage or MediaStorage()
        self.dedup = dedup or redis_client
        self.transport: WhatsAppTransport | None = None

    def attach(self, transport: WhatsAppTransport) -> None:
        """Bind to a transport session and subscribe to its message events."""
        self.transport = transport
        transport.on(EVENT_MESSAGE, self.handle_inbound_message)
        transport.on(EVENT_MESSAGE_CREATE, self.handle_message_created)

    async def handle_inbound_message(self, event: InboundMessage) -> ReconcileResult:
        """`message` entry point."""
        return await self.reconcile(event)

    async def handle_message_created(self, event: MessageCreated) -> ReconcileResult:
        """`message_create` entry point."""
        return await self.reconcile(event)

    async def reconcile(self, event: TransportEvent) -> ReconcileResult:
        """Process one event. Never raises."""
        set_event_context(event.kind, event.message_id)
        stage = "classify"
        dedup_key = None
        try:
            classification = classify(event)
            if classification is Classification.IGNORED:
                reason = _skip_reason(event)
                wa_debug_log(event.kind, message_id=event.message_id, from_me=event.from_me,
                             skip_reason=reason)
                return ReconcileResult(status="skipped", reason=reason)

            stage = "dedup"
            dedup_key = f"{DEDUP_KEY_PREFIX}:{event.message_id}"
            if not await self.dedup.setnx(dedup_key, "1", ttl=settings.message_dedup_ttl_seconds):
                dedup_key = None  # owned by the first delivery
                logger.info(
                    "Duplicate WhatsApp event delivery ignored",
                    extra={"event_type": "wa_duplicate_delivery"},
                )
                return ReconcileResult(status="skipped", reason="duplicate_delivery")
            if await self.store.find_conversation_by_external_id(event.message_id) is not None:
                return ReconcileResult(status="skipped", reason="already_persisted")

            stage = "resolve_phone"
            phone, name_hint = await self._resolve_counterparty(event, classification)
            if not phone or not is_plausible_phone(phone):
                return self._discard(event, "unresolvable_phone", phone=phone)

            stage = "media"
            media = await self._save_media(event) if event.has_media else None

            content = event.body.strip()
            if not content and event.has_media:
                kind = media.kind if media else classify_media_kind(event.media_mimetype, event.message_type)
                content = f"[{kind}]"
            if not content:
                return self._discard(event, "empty_message", phone=phone)

            stage = "resolve_contact"
            resolved = await self.resolver.resolve_or_create(phone, name_hint)
            contact = resolved.contact

            stage = "insert_conversation"
            conversation = await self.store.insert_conversation(
                contact_id=contact.id,
                type="whatsapp",
                content=content,
                direction=DIRECTION_BY_CLASSIFICATION[classification],
                channel="whatsapp",
                media_type=media.kind if media else None,
                media_url=media.url if media else None,
                external_id=event.message_id,
                created_at=self._event_time(event),
            )

            stage = "touch_contact"
            try:
                await self.store.update_contact(contact.id, last_contact_date=datetime.utcnow())
            except Exception as e:
                logger.warning(f"Could not update last contact date for contact {contact.id}: {e}")

            logger.info(
                f"WhatsApp message saved for contact {contact.id}",
                extra={
                    "event_type": "wa_message_saved",
                    "direction": conversation.direction,
                    "contact_id": contact.id,
                    "contact_created": resolved.created,
                },
            )
            wa_debug_log(
                "saved",
                message_id=event.message_id,
                from_me=event.from_me,
                to=event.to_id,
                from_=event.from_id,
                has_media=event.has_media,
                contact_found=not resolved.created,
                contact_created=resolved.created,
                contact_name=contact.name,
                phone=phone,
            )
            return ReconcileResult(
                status="persisted",
                conversation_id=conversation.id,
                contact_id=contact.id,
                contact_created=resolved.created,
            )
        except UnresolvableIdentity as e:
            return self._discard(event, "unresolvable_phone", phone=e.raw_phone)
        except Exception as e:
            logger.error(
                f"Failed to reconcile WhatsApp {event.kind} event at {stage}: {e}",
                exc_info=True,
                extra={
                    "event_type": "wa_event_failed",
                    "stage": stage,
                    "from_id": event.from_id,
                    "to_id": event.to_id,
                    "chat_id": event.chat_id,
                    "from_me": event.from_me,
                },
            )
            wa_debug_log(event.kind, message_id=event.message_id, from_me=event.from_me,
                         to=event.to_id, from_=event.from_id, error=f"{stage}: {e}")
            if dedup_key:
                await self._release(dedup_key)
            return ReconcileResult(status="failed", reason=stage)
        finally:
            clear_event_context()

    async def _resolve_counterparty(
        self, event: ChatMessage, classification: Classification
    ) -> tuple[str | None, str | None]:
        """Return (phone, display name hint) for the other party of a message."""
        if self.transport is None:
            raise RuntimeError("Reconciler is not attached to a transport")

        if classification is Classification.OUTBOUND_BY_SELF:
            target = event.to_id or event.chat_id
            if is_opaque_id(target):
                return await self._phone_from_chat(event.chat_id or target)
            return strip_contact_suffix(target), None

        phone = None
        name = event.author_name
        try:
            wa_contact = await self.transport.get_message_contact(event)
            if wa_contact is not None:
                phone = wa_contact.number
                name = wa_contact.display_name or name
        except TransportError as e:
            logger.warning(f"Contact lookup failed for inbound message, falling back to sender id: {e}")

        if not phone:
            if is_opaque_id(event.from_id):
                chat_phone, chat_name = await self._phone_from_chat(event.chat_id or event.from_id)
                return chat_phone, name or chat_name
            phone = strip_contact_suffix(event.from_id)
        return phone, name

    async def _phone_from_chat(self, chat_id: str) -> tuple[str | None, str | None]:
        chat = await self.transport.get_chat(chat_id)
        if chat is None or chat.contact is None:
            return None, None
        return chat.contact.number, chat.contact.display_name or chat.name

    async def _save_media(self, event: ChatMessage) -> StoredMedia | None:
        """Download and store media; failures are logged and yield None."""
        try:
            payload = await self.transport.download_media(event)
            timestamp_ms = event.timestamp * 1000 if event.timestamp else int(time.time() * 1000)
            return await self.media_storage.save(
                event.message_id,
                timestamp_ms,
                payload.data,
                payload.mimetype,
                event.message_type,
            )
        except Exception as e:
            logger.warning(
                f"Media for message {event.message_id} not saved, persisting without it: {e}",
                extra={"event_type": "wa_media_download_failed"},
            )
            return None

    def _discard(self, event: ChatMessage, reason: str, phone: str | None = None) -> ReconcileResult:
        logger.warning(
            f"Discarding WhatsApp {event.kind} event: {reason}",
            extra={
                "event_type": "wa_event_discarded",
                "reason": reason,
                "from_id": event.from_id,
                "to_id": event.to_id,
                "phone_digits": len(digits_only(phone)),
            },
        )
        wa_debug_log(event.kind, message_id=event.message_id, from_me=event.from_me,
                     to=event.to_id, from_=event.from_id, skip_reason=reason, phone=phone)
        return ReconcileResult(status="discarded", reason=reason)

    async def _release(self, key: str) -> None:
        try:
            await self.dedup.delete(key)
        except Exception as e:
            logger.warning(f"Could not release dedup key {key}: {e}")

    @staticmethod
    def _event_time(event: ChatMessage) -> datetime:
        if event.timestamp:
            return datetime.fromtimestamp(event.timestamp, tz=timezone.utc).replace(tzinfo=None)
        return datetime.utcnow()

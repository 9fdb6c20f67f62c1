"""Contact resolution: find a contact by any phone shape, or provision one."""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass

from app.core.phone import UnresolvableIdentity, digits_only, require_canonical, variants_of
from app.persistence.models.contact import Contact
from app.persistence.models.opportunity import DEFAULT_STAGE
from app.persistence.store import ConversationStore

logger = logging.getLogger(__name__)

AUTO_CREATED_TAGS = ["whatsapp", "auto-created"]
AUTO_CREATED_CATEGORY = "prospecto"
AUTO_CREATED_LEAD_SOURCE = "other"
PLACEHOLDER_EMAIL_DOMAIN = "whatsapp"


@dataclass
class ResolvedContact:
    """Result of resolve_or_create."""

    contact: Contact
    created: bool = False
    opportunity_id: int | None = None


def placeholder_name(canonical_phone: str) -> str:
    return f"New - {canonical_phone}"


def placeholder_email(canonical_phone: str) -> str:
    """Non-deliverable email satisfying the contact's non-null email column."""
    return f"{digits_only(canonical_phone)}@{PLACEHOLDER_EMAIL_DOMAIN}"


class ContactResolver:
    """Find-or-create contacts by phone.

    Creation is serialized per canonical phone with an in-process lock, and the
    lookup is repeated inside the lock, so concurrent events for one unknown
    number produce exactly one contact. This relies on a single process
    owning the WhatsApp session.
    """

    def __init__(self, store: ConversationStore) -> None:
        """Initialize resolver.

        Args:
            store: Persistence boundary
        """
        self.store = store
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: defaultdict[str, int] = defaultdict(int)

    async def find_by_phone(self, raw_phone: str) -> Contact | None:
        """Probe the store with every phone variant, in order; first match wins."""
        for variant in variants_of(raw_phone):
            contact = await self.store.find_contact_by_phone(variant)
            if contact is not None:
                return contact
        return None

    async def resolve_or_create(
        self, raw_phone: str, display_name: str | None = None
    ) -> ResolvedContact:
        """Return the contact for a phone, creating it (plus an opportunity) if unknown.

        Args:
            raw_phone: Phone in any format
            display_name: Optional name for a newly created contact

        Returns:
            ResolvedContact (existing contacts are returned unchanged)

        Raises:
            UnresolvableIdentity: If the phone cannot be canonicalized
            TransientStoreFailure: If the store is unavailable
        """
        canonical = require_canonical(raw_phone)

        existing = await self.find_by_phone(raw_phone)
        if existing is not None:
            return ResolvedContact(contact=existing)

        lock = self._locks.setdefault(canonical, asyncio.Lock())
        self._lock_users[canonical] += 1
        try:
            async with lock:
                # Another event may have created it while we waited
                existing = await self.find_by_phone(raw_phone)
                if existing is not None:
                    return ResolvedContact(contact=existing)
                return await self._provision(canonical, display_name)
        finally:
            self._lock_users[canonical] -= 1
            if not self._lock_users[canonical]:
                del self._lock_users[canonical]
                del self._locks[canonical]

    async def _provision(self, canonical: str, display_name: str | None) -> ResolvedContact:
        name = (display_name or "").strip() or placeholder_name(canonical)
        contact = await self.store.insert_contact(
            name=name,
            email=placeholder_email(canonical),
            phone=canonical,
            category=AUTO_CREATED_CATEGORY,
            lead_source=AUTO_CREATED_LEAD_SOURCE,
            tags=list(AUTO_CREATED_TAGS),
            score=0,
        )
        logger.info(
            f"Auto-created contact {contact.id} for {canonical}",
            extra={"event_type": "contact_auto_created", "contact_id": contact.id, "phone": canonical},
        )

        # The contact stands on its own; an opportunity failure is logged, never rolled back
        opportunity_id = None
        try:
            opportunity = await self.store.insert_opportunity(
                contact_id=contact.id,
                title=f"Oportunidad - {name}",
                value=0,
                stage=DEFAULT_STAGE,
            )
            opportunity_id = opportunity.id
        except Exception as e:
            logger.error(
                f"Contact {contact.id} created but default opportunity failed: {e}",
                exc_info=True,
                extra={"event_type": "auto_provision_partial", "contact_id": contact.id, "phone": canonical},
            )

        return ResolvedContact(contact=contact, created=True, opportunity_id=opportunity_id)


__all__ = ["ContactResolver", "ResolvedContact", "UnresolvableIdentity"]

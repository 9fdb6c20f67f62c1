"""Contact service for managing contacts."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.phone import canonicalize
from app.persistence.models.contact import Contact
from app.persistence.repositories.contact_repository import ContactRepository

logger = logging.getLogger(__name__)


class ContactHasDependents(Exception):
    """A contact cannot be deleted while other records point at it."""

    def __init__(self, contact_id: int, dependents: int):
        self.contact_id = contact_id
        self.dependents = dependents
        super().__init__(f"Contact {contact_id} still has {dependents} related records")


@dataclass
class ConsolidationResult:
    consolidated: int = 0
    consolidated_ids: list[int] = field(default_factory=list)


class ContactService:
    """Service for contact management."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize contact service."""
        self.session = session
        self.contact_repo = ContactRepository(session)

    async def list_contacts(self) -> list[Contact]:
        """List every contact, oldest first."""
        return await self.contact_repo.list_all()

    async def get_contact(self, contact_id: int, touch: bool = False) -> Contact | None:
        """Get a contact by ID.

        Args:
            contact_id: Contact ID
            touch: Record the lookup as the latest contact date

        Returns:
            Contact or None if not found
        """
        if touch:
            return await self.contact_repo.update(contact_id, last_contact_date=datetime.utcnow())
        return await self.contact_repo.get_by_id(contact_id)

    async def create_contact(self, name: str, email: str, **fields: Any) -> Contact:
        """Create a new contact.

        The phone, if given, is stored in canonical form (or dropped when it
        cannot be normalized).

        Args:
            name: Display name
            email: Email address
            **fields: Any other Contact column

        Returns:
            Created contact
        """
        if "phone" in fields:
            fields["phone"] = canonicalize(fields["phone"])
        if fields.get("tags") is None:
            fields["tags"] = []
        if not fields.get("category"):
            fields["category"] = "prospecto"
        return await self.contact_repo.create(name=name, email=email, **fields)

    async def update_contact(self, contact_id: int, **fields: Any) -> Contact | None:
        """Update the given fields of a contact.

        Args:
            contact_id: Contact ID
            **fields: Columns to change; a phone is canonicalized

        Returns:
            Updated contact or None if not found
        """
        if "phone" in fields:
            fields["phone"] = canonicalize(fields["phone"])
        if "tags" in fields and fields["tags"] is None:
            fields["tags"] = []
        fields["updated_at"] = datetime.utcnow()
        return await self.contact_repo.update(contact_id, **fields)

    async def delete_contact(self, contact_id: int) -> bool:
        """Permanently delete a contact that has no history attached.

        Returns:
            True if deleted, False if not found

        Raises:
            ContactHasDependents: If conversations, opportunities or tasks still
                reference the contact
        """
        dependents = await self.contact_repo.count_dependents(contact_id)
        if dependents:
            raise ContactHasDependents(contact_id, dependents)
        return await self.contact_repo.delete(contact_id)

    async def consolidate_duplicates(self) -> ConsolidationResult:
        """Merge contacts whose phones canonicalize to the same number.

        The oldest contact of each group survives: conversations,
        opportunities and tasks of the others are moved to it, the others are
        deleted, and its phone is rewritten to canonical form.
        """
        groups: dict[str, list[Contact]] = {}
        for contact in await self.contact_repo.list_with_phone():
            canonical = canonicalize(contact.phone)
            if canonical:
                groups.setdefault(canonical, []).append(contact)

        result = ConsolidationResult()
        for canonical, group in groups.items():
            if len(group) <= 1:
                continue
            group.sort(key=lambda c: (c.created_at or datetime.min, c.id))
            primary, duplicates = group[0], group[1:]
            primary_id = primary.id
            for duplicate in duplicates:
                duplicate_id = duplicate.id
                await self.contact_repo.reparent_dependents(duplicate_id, primary_id)
                await self.contact_repo.delete_uncommitted(duplicate_id)
                result.consolidated_ids.append(duplicate_id)
            primary.phone = canonical

            logger.info(
                f"Consolidated {len(duplicates)} duplicate(s) into contact {primary_id}",
                extra={"event_type": "contacts_consolidated", "contact_id": primary_id},
            )

        if result.consolidated_ids:
            await self.session.commit()
        result.consolidated = len(result.consolidated_ids)
        return result

    async def normalize_phones(self) -> int:
        """Rewrite every stored phone to canonical form.

        Phones that cannot be normalized are left as they are.

        Returns:
            Number of contacts changed
        """
        normalized = 0
        for contact in await self.contact_repo.list_with_phone():
            canonical = canonicalize(contact.phone)
            if canonical and canonical != contact.phone:
                contact.phone = canonical
                normalized += 1
        if normalized:
            await self.session.commit()
        return normalized

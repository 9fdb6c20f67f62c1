"""Contact repository."""

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.persistence.models.contact import Contact
from app.persistence.models.conversation import Conversation
from app.persistence.models.opportunity import Opportunity
from app.persistence.models.task import Task
from app.persistence.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    """Repository for Contact entities."""

    def __init__(self, session: AsyncSession):
        """Initialize contact repository."""
        super().__init__(Contact, session)

    async def get_by_phone(self, phone: str) -> Contact | None:
        """Get contact whose stored phone equals `phone` exactly.

        Returns the oldest match if several exist (duplicates are folded by
        consolidation).

        Args:
            phone: Phone string exactly as stored

        Returns:
            Contact or None if not found
        """
        stmt = (
            select(Contact)
            .where(Contact.phone == phone)
            .order_by(Contact.created_at, Contact.id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Contact]:
        """List every contact, oldest first."""
        stmt = select(Contact).order_by(Contact.created_at, Contact.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_with_phone(self) -> list[Contact]:
        """List contacts that have a phone, oldest first."""
        stmt = (
            select(Contact)
            .where(Contact.phone.is_not(None))
            .order_by(Contact.created_at, Contact.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_uncommitted(self, contact_id: int) -> None:
        """Delete a contact row inside the caller's unit of work."""
        await self.session.execute(delete(Contact).where(Contact.id == contact_id))

    async def count_dependents(self, contact_id: int) -> int:
        """Number of conversations, opportunities and tasks attached to a contact."""
        total = 0
        for model in (Conversation, Opportunity, Task):
            result = await self.session.execute(
                select(func.count()).select_from(model).where(model.contact_id == contact_id)
            )
            total += result.scalar_one()
        return total

    async def reparent_dependents(self, from_contact_id: int, to_contact_id: int) -> None:
        """Move conversations, opportunities and tasks to another contact.

        Does not commit; callers fold this into their own unit of work.
        """
        for model in (Conversation, Opportunity, Task):
            await self.session.execute(
                update(model)
                .where(model.contact_id == from_contact_id)
                .values(contact_id=to_contact_id)
            )

"""Conversation repository."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.persistence.models.conversation import Conversation
from app.persistence.repositories.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for Conversation entities."""

    def __init__(self, session: AsyncSession):
        """Initialize conversation repository."""
        super().__init__(Conversation, session)

    async def get_by_external_id(self, external_id: str) -> Conversation | None:
        """Get conversation by transport message id (for idempotency)."""
        stmt = (
            select(Conversation)
            .where(Conversation.external_id == external_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_contact(self, contact_id: int) -> list[Conversation]:
        """List a contact's conversations in chronological order.

        Args:
            contact_id: Contact ID

        Returns:
            Conversations ordered by created_at ascending
        """
        stmt = (
            select(Conversation)
            .where(Conversation.contact_id == contact_id)
            .order_by(Conversation.created_at, Conversation.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_recent(self) -> list[Conversation]:
        """List all conversations attached to a contact, newest first."""
        stmt = (
            select(Conversation)
            .where(Conversation.contact_id.is_not(None))
            .order_by(Conversation.created_at.desc(), Conversation.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_contact(self, contact_id: int) -> int:
        """Delete every conversation of a contact.

        Returns:
            Number of rows deleted
        """
        result = await self.session.execute(
            delete(Conversation).where(Conversation.contact_id == contact_id)
        )
        await self.session.commit()
        return result.rowcount or 0

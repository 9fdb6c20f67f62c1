"""Conversation service for the interaction history."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.persistence.models.contact import Contact
from app.persistence.models.conversation import Conversation
from app.persistence.repositories.contact_repository import ContactRepository
from app.persistence.repositories.conversation_repository import ConversationRepository

INTERACTION_SCORE = 5


@dataclass
class RecentConversation:
    conversation: Conversation
    contact: Contact | None


class ConversationService:
    """Service for manually logged conversations and history queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize conversation service."""
        self.session = session
        self.conversation_repo = ConversationRepository(session)
        self.contact_repo = ContactRepository(session)

    async def list_by_contact(self, contact_id: int) -> list[Conversation]:
        """Conversation history of a contact, oldest first."""
        return await self.conversation_repo.list_by_contact(contact_id)

    async def create_conversation(
        self,
        contact_id: int | None,
        content: str,
        type: str = "nota",
        subject: str | None = None,
        direction: str = "saliente",
        channel: str = "manual",
    ) -> Conversation:
        """Log an interaction and bump the contact's score.

        Args:
            contact_id: Contact ID (optional)
            content: Interaction text
            type: nota, llamada, email, reunion or whatsapp
            subject: Optional subject line
            direction: entrante or saliente
            channel: manual, email, whatsapp or telefono

        Returns:
            Created conversation
        """
        conversation = await self.conversation_repo.create(
            contact_id=contact_id,
            type=type,
            subject=subject,
            content=content,
            direction=direction,
            channel=channel,
        )

        # Simple scoring: every logged interaction is worth a few points
        if contact_id is not None:
            contact = await self.contact_repo.get_by_id(contact_id)
            if contact is not None:
                await self.contact_repo.update(contact_id, score=(contact.score or 0) + INTERACTION_SCORE)

        return conversation

    async def list_recent(self, limit: int = 10) -> list[RecentConversation]:
        """Latest conversation of each contact, most recently active contacts first.

        Args:
            limit: Maximum number of contacts

        Returns:
            One entry per contact
        """
        latest: dict[int, Conversation] = {}
        for conversation in await self.conversation_repo.list_recent():
            if conversation.contact_id not in latest:
                latest[conversation.contact_id] = conversation
            if len(latest) >= limit:
                break

        result = []
        for contact_id, conversation in latest.items():
            contact = await self.contact_repo.get_by_id(contact_id)
            result.append(RecentConversation(conversation=conversation, contact=contact))
        return result

    async def delete_conversation(self, conversation_id: int) -> bool:
        return await self.conversation_repo.delete(conversation_id)

    async def delete_by_contact(self, contact_id: int) -> int:
        return await self.conversation_repo.delete_by_contact(contact_id)

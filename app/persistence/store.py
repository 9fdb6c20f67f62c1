"""Conversation store: the persistence boundary used by the WhatsApp pipeline.

The reconciler runs outside any HTTP request, so it cannot borrow a request
session. Each store call opens its own short session from the session factory
and commits before returning; every call is atomic at the single-record level
and nothing spans records.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.persistence.models.contact import Contact
from app.persistence.models.conversation import Conversation
from app.persistence.models.opportunity import Opportunity
from app.persistence.repositories.contact_repository import ContactRepository
from app.persistence.repositories.conversation_repository import ConversationRepository
from app.persistence.repositories.opportunity_repository import OpportunityRepository

logger = logging.getLogger(__name__)


class TransientStoreFailure(Exception):
    """The underlying store is unavailable or rejected a write."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Store operation '{operation}' failed: {cause}")


class ConversationStore(ABC):
    """Persistence operations needed by the resolver and reconciler."""

    @abstractmethod
    async def find_contact_by_phone(self, phone: str) -> Contact | None:
        """Find a contact whose stored phone equals `phone` exactly."""
        pass

    @abstractmethod
    async def get_contact(self, contact_id: int) -> Contact | None:
        """Find a contact by ID."""
        pass

    @abstractmethod
    async def insert_contact(self, **fields: Any) -> Contact:
        """Insert a contact and return it with its ID."""
        pass

    @abstractmethod
    async def update_contact(self, contact_id: int, **fields: Any) -> None:
        """Update contact fields."""
        pass

    @abstractmethod
    async def insert_conversation(self, **fields: Any) -> Conversation:
        """Insert a conversation record."""
        pass

    @abstractmethod
    async def find_conversation_by_external_id(self, external_id: str) -> Conversation | None:
        """Find a conversation by transport message id."""
        pass

    @abstractmethod
    async def insert_opportunity(self, **fields: Any) -> Opportunity:
        """Insert an opportunity."""
        pass


class SqlConversationStore(ConversationStore):
    """ConversationStore backed by the SQLAlchemy repositories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store.

        Args:
            session_factory: Factory producing AsyncSession instances
        """
        self.session_factory = session_factory

    async def _run(self, operation: str, func):
        try:
            async with self.session_factory() as session:
                return await func(session)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Store operation {operation} failed: {e}",
                extra={"event_type": "store_failure", "operation": operation},
            )
            raise TransientStoreFailure(operation, e) from e

    async def find_contact_by_phone(self, phone: str) -> Contact | None:
        return await self._run(
            "find_contact_by_phone",
            lambda s: ContactRepository(s).get_by_phone(phone),
        )

    async def get_contact(self, contact_id: int) -> Contact | None:
        return await self._run(
            "get_contact",
            lambda s: ContactRepository(s).get_by_id(contact_id),
        )

    async def insert_contact(self, **fields: Any) -> Contact:
        return await self._run(
            "insert_contact",
            lambda s: ContactRepository(s).create(**fields),
        )

    async def update_contact(self, contact_id: int, **fields: Any) -> None:
        await self._run(
            "update_contact",
            lambda s: ContactRepository(s).update(contact_id, **fields),
        )

    async def insert_conversation(self, **fields: Any) -> Conversation:
        return await self._run(
            "insert_conversation",
            lambda s: ConversationRepository(s).create(**fields),
        )

    async def find_conversation_by_external_id(self, external_id: str) -> Conversation | None:
        return await self._run(
            "find_conversation_by_external_id",
            lambda s: ConversationRepository(s).get_by_external_id(external_id),
        )

    async def insert_opportunity(self, **fields: Any) -> Opportunity:
        return await self._run(
            "insert_opportunity",
            lambda s: OpportunityRepository(s).create(**fields),
        )

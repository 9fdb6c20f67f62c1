"""Opportunity repository."""

from sqlalchemy.ext.asyncio import AsyncSession

from app.persistence.models.opportunity import Opportunity
from app.persistence.repositories.base import BaseRepository


class OpportunityRepository(BaseRepository[Opportunity]):
    """Repository for Opportunity entities."""

    def __init__(self, session: AsyncSession):
        """Initialize opportunity repository."""
        super().__init__(Opportunity, session)

"""Pipeline stage repository."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.persistence.models.pipeline_stage import DEFAULT_PIPELINE_STAGES, PipelineStage
from app.persistence.repositories.base import BaseRepository


class PipelineStageRepository(BaseRepository[PipelineStage]):
    """Repository for PipelineStage entities."""

    def __init__(self, session: AsyncSession):
        """Initialize pipeline stage repository."""
        super().__init__(PipelineStage, session)

    async def seed_defaults(self) -> int:
        """Insert the default stages when the table is empty.

        Returns:
            Number of stages inserted
        """
        count = await self.session.scalar(select(func.count()).select_from(PipelineStage))
        if count:
            return 0

        for position, (name, color) in enumerate(DEFAULT_PIPELINE_STAGES, start=1):
            self.session.add(PipelineStage(name=name, order=position, color=color))
        await self.session.commit()
        return len(DEFAULT_PIPELINE_STAGES)

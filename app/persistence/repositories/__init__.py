"""Repository implementations."""

from app.persistence.repositories.base import BaseRepository
from app.persistence.repositories.contact_repository import ContactRepository
from app.persistence.repositories.conversation_repository import ConversationRepository
from app.persistence.repositories.opportunity_repository import OpportunityRepository
from app.persistence.repositories.pipeline_stage_repository import PipelineStageRepository

__all__ = [
    "BaseRepository",
    "ContactRepository",
    "ConversationRepository",
    "OpportunityRepository",
    "PipelineStageRepository",
]

"""Database models."""

from app.persistence.models.contact import Contact
from app.persistence.models.conversation import Conversation
from app.persistence.models.opportunity import Opportunity
from app.persistence.models.pipeline_stage import PipelineStage
from app.persistence.models.task import Task

__all__ = [
    "Contact",
    "Conversation",
    "Opportunity",
    "PipelineStage",
    "Task",
]

"""Task model."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.persistence.database import Base


class Task(Base):
    """Follow-up task for a contact or opportunity."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    opportunity_id = Column(Integer, ForeignKey("opportunities.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    priority = Column(String(10), nullable=False, default="media")  # baja, media, alta
    google_calendar_event_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    contact = relationship("Contact", back_populates="tasks")

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, contact_id={self.contact_id}, title={self.title})>"

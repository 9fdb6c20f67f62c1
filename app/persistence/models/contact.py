"""Contact model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from app.persistence.database import Base

if TYPE_CHECKING:
    from app.persistence.models.conversation import Conversation
    from app.persistence.models.opportunity import Opportunity
    from app.persistence.models.task import Task

CONTACT_CATEGORIES = ("cliente", "prospecto", "proveedor", "personal")


class Contact(Base):
    """Contact model representing a real-world counterparty."""

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    google_sheet_row_id = Column(String(255), nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True, index=True)  # canonical +52XXXXXXXXXX
    company = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    category = Column(String(20), nullable=False, default="prospecto")  # cliente, prospecto, proveedor, personal
    tags = Column(JSON, nullable=False, default=list)
    avatar_url = Column(Text, nullable=True)
    lead_source = Column(String(50), nullable=True)
    score = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    last_contact_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships (no cascade: dependents are re-parented, never deleted with the contact)
    conversations = relationship("Conversation", back_populates="contact")
    opportunities = relationship("Opportunity", back_populates="contact")
    tasks = relationship("Task", back_populates="contact")

    def __repr__(self) -> str:
        return f"<Contact(id={self.id}, name={self.name}, phone={self.phone})>"

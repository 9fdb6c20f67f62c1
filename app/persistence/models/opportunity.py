"""Opportunity model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.persistence.database import Base

if TYPE_CHECKING:
    from app.persistence.models.contact import Contact

DEFAULT_STAGE = "Lead"


class Opportunity(Base):
    """Sales opportunity attached to a contact."""

    __tablename__ = "opportunities"

    id = Column(Integer, primary_key=True, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    value = Column(Float, nullable=False, default=0)
    probability = Column(Integer, nullable=False, default=50)
    stage = Column(String(50), nullable=False, default=DEFAULT_STAGE)
    expected_close_date = Column(DateTime, nullable=True)
    next_followup = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    contact = relationship("Contact", back_populates="opportunities")

    def __repr__(self) -> str:
        return f"<Opportunity(id={self.id}, contact_id={self.contact_id}, title={self.title}, stage={self.stage})>"

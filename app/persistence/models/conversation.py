"""Conversation model (one row per logged interaction or chat message)."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.persistence.database import Base

if TYPE_CHECKING:
    from app.persistence.models.contact import Contact

CONVERSATION_TYPES = ("nota", "llamada", "email", "reunion", "whatsapp")
DIRECTIONS = ("entrante", "saliente")
CHANNELS = ("manual", "email", "whatsapp", "telefono")
MEDIA_TYPES = ("image", "audio", "video", "document", "sticker")


class Conversation(Base):
    """Conversation record; immutable once written."""

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    contact_id = Column(Integer, ForeignKey("contacts.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False, default="nota")
    subject = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    direction = Column(String(20), nullable=False, default="saliente")  # entrante, saliente
    channel = Column(String(20), nullable=False, default="manual")  # manual, email, whatsapp, telefono
    media_type = Column(String(20), nullable=True)
    media_url = Column(Text, nullable=True)
    external_id = Column(String(255), nullable=True, index=True)  # transport message id
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    contact = relationship("Contact", back_populates="conversations")

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id}, contact_id={self.contact_id}, type={self.type}, direction={self.direction})>"

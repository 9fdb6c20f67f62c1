"""Domain services."""

from app.domain.services.contact_resolver import ContactResolver
from app.domain.services.contact_service import ContactService
from app.domain.services.conversation_service import ConversationService
from app.domain.services.message_reconciler import MessageReconciler
from app.domain.services.whatsapp_session import SessionManager

__all__ = [
    "ContactResolver",
    "ContactService",
    "ConversationService",
    "MessageReconciler",
    "SessionManager",
]

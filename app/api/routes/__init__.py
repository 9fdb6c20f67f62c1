"""API routes."""

from fastapi import APIRouter

from app.api.routes import contacts, conversations, whatsapp, whatsapp_webhooks

api_router = APIRouter()

# Bridge callback (authenticated by shared secret, not by session)
api_router.include_router(whatsapp_webhooks.router, prefix="/whatsapp", tags=["whatsapp-webhooks"])

api_router.include_router(whatsapp.router, prefix="/whatsapp", tags=["whatsapp"])
api_router.include_router(contacts.router, prefix="/contacts", tags=["contacts"])
api_router.include_router(conversations.router, prefix="/conversations", tags=["conversations"])

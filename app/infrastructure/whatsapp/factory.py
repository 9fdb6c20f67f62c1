"""WhatsApp transport factory."""

import logging

from app.infrastructure.whatsapp.base import WhatsAppTransport
from app.infrastructure.whatsapp.bridge_client import BridgeTransport
from app.settings import settings

logger = logging.getLogger(__name__)


def create_transport(webhook_url: str | None = None) -> WhatsAppTransport:
    """Build a new transport session from settings.

    Args:
        webhook_url: Public URL of the webhook endpoint the bridge should call

    Returns:
        A fresh, not yet started transport
    """
    logger.info(
        f"Creating WhatsApp bridge transport for session {settings.whatsapp_session_name}",
        extra={"bridge_url": settings.whatsapp_bridge_url},
    )
    return BridgeTransport(
        base_url=settings.whatsapp_bridge_url,
        session_name=settings.whatsapp_session_name,
        api_key=settings.whatsapp_bridge_api_key,
        webhook_url=webhook_url,
        timeout=settings.whatsapp_bridge_timeout_seconds,
    )

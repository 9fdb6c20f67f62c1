"""FastAPI dependencies for the WhatsApp session and webhook authentication."""

import hmac
import logging

from fastapi import Header, HTTPException, Request, status

from app.domain.services.whatsapp_session import SessionManager, whatsapp_enabled
from app.settings import settings

logger = logging.getLogger(__name__)


def get_session_manager(request: Request) -> SessionManager:
    """Get the process-wide WhatsApp session manager.

    Raises:
        HTTPException: 503 if WhatsApp is disabled in this environment
    """
    manager: SessionManager | None = getattr(request.app.state, "whatsapp", None)
    if manager is None or not whatsapp_enabled():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="WhatsApp is not enabled",
        )
    return manager


async def verify_bridge_secret(
    x_bridge_secret: str | None = Header(None, alias="X-Bridge-Secret"),
) -> None:
    """Check the shared secret on bridge webhook calls, when one is configured.

    Raises:
        HTTPException: 403 if the secret is missing or wrong
    """
    expected = settings.whatsapp_webhook_secret
    if not expected:
        return
    if not x_bridge_secret or not hmac.compare_digest(x_bridge_secret, expected):
        logger.warning(
            "Rejected WhatsApp webhook with invalid secret",
            extra={"event_type": "wa_webhook_rejected"},
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

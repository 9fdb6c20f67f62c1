"""Webhook endpoint for the WhatsApp bridge sidecar."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.api.deps import verify_bridge_secret
from app.domain.services.whatsapp_session import SessionManager
from app.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter()


class BridgeEvent(BaseModel):
    """Event envelope posted by the bridge."""

    event: str
    session: str | None = None
    data: Any = None


@router.post("/webhook", dependencies=[Depends(verify_bridge_secret)])
async def whatsapp_webhook(
    payload: BridgeEvent,
    request: Request,
) -> dict[str, bool]:
    """Receive a session or message event from the bridge.

    The bridge gets a 200 for every authenticated delivery, whether or not the
    event was usable; outcomes are visible in the logs and the debug trace.

    Args:
        payload: Event name and its whatsapp-web.js payload
        request: FastAPI request (the session manager lives on app.state)

    Returns:
        Acknowledgement
    """
    manager: SessionManager | None = getattr(request.app.state, "whatsapp", None)
    if manager is None:
        logger.info(f"WhatsApp disabled, ignoring {payload.event} webhook")
        return {"received": True}

    if payload.session and payload.session != settings.whatsapp_session_name:
        logger.warning(
            f"Ignoring WhatsApp {payload.event} webhook for session {payload.session}",
            extra={"event_type": "wa_webhook_foreign_session"},
        )
        return {"received": True}

    try:
        await manager.handle_webhook(payload.event, payload.data)
    except ValueError as e:
        logger.warning(
            f"Malformed WhatsApp {payload.event} webhook: {e}",
            extra={"event_type": "wa_webhook_malformed"},
        )
    except Exception as e:
        logger.error(
            f"Error handling WhatsApp {payload.event} webhook: {e}",
            exc_info=True,
            extra={"event_type": "wa_webhook_error"},
        )
    return {"received": True}

"""WhatsApp session API endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from pydantic import BaseModel

from app.api.deps import get_session_manager
from app.core.debug import clear_wa_debug_logs, read_wa_debug_logs
from app.domain.services.whatsapp_session import SessionManager
from app.infrastructure.media_storage import MediaStorage, MediaStorageError
from app.infrastructure.whatsapp.base import TransportError

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionInfo(BaseModel):
    phone_number: str | None = None
    name: str | None = None


class StatusResponse(BaseModel):
    """Session status."""

    state: str
    initialized: bool
    ready: bool
    qr_code: str | None = None
    info: SessionInfo


class SendMessageRequest(BaseModel):
    """Send message request."""

    phone: str
    message: str


class SendMessageResponse(BaseModel):
    success: bool
    error: str | None = None
    message_id: str | None = None


class ChatResponse(BaseModel):
    phone: str | None
    name: str | None
    last_message: str | None
    last_message_time: str | None
    unread_count: int


class DebugLogsResponse(BaseModel):
    lines: list[str]
    total: int


@router.post("/init", response_model=StatusResponse)
async def init_whatsapp(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, Any]:
    """Start the WhatsApp session; a no-op when one already exists."""
    try:
        return await manager.initialize()
    except TransportError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to start WhatsApp session: {e}",
        )


@router.get("/status", response_model=StatusResponse)
async def get_status(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, Any]:
    """Get the current session status, including the pairing QR code while pairing."""
    return manager.status()


@router.post("/send", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> SendMessageResponse:
    """Send a text message.

    Failures (not connected, unregistered number, bridge error) are reported
    in the body with success=false.
    """
    if not request.phone.strip() or not request.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Phone and message required",
        )
    result = await manager.send(request.phone, request.message)
    return SendMessageResponse(success=result.success, error=result.error, message_id=result.message_id)


@router.post("/disconnect")
async def disconnect(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, bool]:
    """Log out and drop the session."""
    await manager.disconnect()
    return {"success": True}


@router.get("/chats", response_model=list[ChatResponse])
async def list_chats(
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> list[dict[str, Any]]:
    """List one-to-one chats on the paired account."""
    try:
        return await manager.get_all_chats()
    except TransportError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/media/{filename}")
async def get_media(filename: str) -> FileResponse:
    """Serve a stored media attachment."""
    try:
        path, content_type = MediaStorage().resolve(filename)
    except MediaStorageError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid filename")
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return FileResponse(path, media_type=content_type)


@router.get("/debug-logs", response_model=DebugLogsResponse)
async def get_debug_logs(lines: int = Query(200, ge=1, le=5000)) -> DebugLogsResponse:
    """Return the tail of the WhatsApp debug trace."""
    entries = read_wa_debug_logs(lines)
    return DebugLogsResponse(lines=entries, total=len(entries))


@router.delete("/debug-logs")
async def delete_debug_logs() -> dict[str, bool]:
    """Clear the WhatsApp debug trace."""
    return {"success": clear_wa_debug_logs()}

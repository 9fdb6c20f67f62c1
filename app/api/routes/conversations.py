"""Conversation history API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.routes.contacts import ContactResponse, _contact_to_response
from app.domain.services.conversation_service import ConversationService
from app.persistence.database import get_db
from app.persistence.models.conversation import CHANNELS, CONVERSATION_TYPES, DIRECTIONS, Conversation

router = APIRouter()


class ConversationResponse(BaseModel):
    """Conversation response model."""

    id: int
    contact_id: int | None
    type: str
    subject: str | None
    content: str
    direction: str
    channel: str
    media_type: str | None
    media_url: str | None
    created_at: str


class RecentConversationResponse(ConversationResponse):
    contact: ContactResponse | None


class CreateConversationRequest(BaseModel):
    """Manual interaction entry."""

    contact_id: int | None = None
    content: str
    type: str = "nota"
    subject: str | None = None
    direction: str = "saliente"
    channel: str = "manual"


def _conversation_to_response(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        id=conversation.id,
        contact_id=conversation.contact_id,
        type=conversation.type,
        subject=conversation.subject,
        content=conversation.content,
        direction=conversation.direction,
        channel=conversation.channel,
        media_type=conversation.media_type,
        media_url=conversation.media_url,
        created_at=conversation.created_at.isoformat() if conversation.created_at else "",
    )


@router.get("/recent", response_model=list[RecentConversationResponse])
async def list_recent(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: int = Query(10, ge=1, le=100),
) -> list[RecentConversationResponse]:
    """Latest conversation per contact, most recently active contacts first."""
    entries = await ConversationService(db).list_recent(limit=limit)
    return [
        RecentConversationResponse(
            **_conversation_to_response(entry.conversation).model_dump(),
            contact=_contact_to_response(entry.contact) if entry.contact else None,
        )
        for entry in entries
    ]


@router.get("/contact/{contact_id}", response_model=list[ConversationResponse])
async def list_by_contact(
    contact_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ConversationResponse]:
    """Conversation history of a contact, oldest first."""
    conversations = await ConversationService(db).list_by_contact(contact_id)
    return [_conversation_to_response(c) for c in conversations]


@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    request: CreateConversationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ConversationResponse:
    """Log a note, call, email or meeting; the contact gains score."""
    if request.type not in CONVERSATION_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid type: {request.type}")
    if request.direction not in DIRECTIONS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid direction: {request.direction}")
    if request.channel not in CHANNELS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid channel: {request.channel}")

    conversation = await ConversationService(db).create_conversation(**request.model_dump())
    return _conversation_to_response(conversation)


@router.delete("/contact/{contact_id}")
async def delete_by_contact(
    contact_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, int | bool]:
    """Delete a contact's whole history."""
    deleted = await ConversationService(db).delete_by_contact(contact_id)
    return {"success": True, "deleted": deleted}


@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Delete a single conversation."""
    deleted = await ConversationService(db).delete_conversation(conversation_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )

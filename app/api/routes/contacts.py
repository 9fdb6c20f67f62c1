"""Contacts API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.services.contact_service import ContactHasDependents, ContactService
from app.persistence.database import get_db
from app.persistence.models.contact import CONTACT_CATEGORIES, Contact

router = APIRouter()


# ============== Response Models ==============

class ContactResponse(BaseModel):
    """Contact response model."""

    id: int
    name: str
    email: str
    phone: str | None
    company: str | None
    address: str | None
    category: str
    tags: list[str]
    avatar_url: str | None
    google_sheet_row_id: str | None
    lead_source: str | None
    score: int
    notes: str | None
    last_contact_date: str | None
    created_at: str
    updated_at: str | None


class ConsolidateResponse(BaseModel):
    success: bool
    consolidated: int
    consolidated_ids: list[int]
    message: str


class NormalizePhonesResponse(BaseModel):
    success: bool
    normalized: int
    message: str


# ============== Request Models ==============

class CreateContactRequest(BaseModel):
    """Create contact request."""

    name: str
    email: str
    phone: str | None = None
    company: str | None = None
    address: str | None = None
    category: str = "prospecto"
    tags: list[str] | None = None
    avatar_url: str | None = None
    google_sheet_row_id: str | None = None
    lead_source: str | None = None
    score: int = 0
    notes: str | None = None


class UpdateContactRequest(BaseModel):
    """Update contact request; only fields present in the body are changed."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    address: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    avatar_url: str | None = None
    lead_source: str | None = None
    score: int | None = None
    notes: str | None = None


# ============== Helper Functions ==============

def _contact_to_response(contact: Contact) -> ContactResponse:
    """Convert a contact model to response."""
    return ContactResponse(
        id=contact.id,
        name=contact.name,
        email=contact.email,
        phone=contact.phone,
        company=contact.company,
        address=contact.address,
        category=contact.category,
        tags=list(contact.tags or []),
        avatar_url=contact.avatar_url,
        google_sheet_row_id=contact.google_sheet_row_id,
        lead_source=contact.lead_source,
        score=contact.score or 0,
        notes=contact.notes,
        last_contact_date=contact.last_contact_date.isoformat() if contact.last_contact_date else None,
        created_at=contact.created_at.isoformat() if contact.created_at else "",
        updated_at=contact.updated_at.isoformat() if contact.updated_at else None,
    )


def _check_category(category: str | None) -> None:
    if category is not None and category not in CONTACT_CATEGORIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid category: {category}",
        )


# ============== Maintenance Endpoints ==============

@router.post("/consolidate-duplicates", response_model=ConsolidateResponse)
async def consolidate_duplicates(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ConsolidateResponse:
    """Merge contacts whose phones denote the same number into the oldest one."""
    result = await ContactService(db).consolidate_duplicates()
    return ConsolidateResponse(
        success=True,
        consolidated=result.consolidated,
        consolidated_ids=result.consolidated_ids,
        message=(
            f"Consolidated {result.consolidated} duplicate contacts"
            if result.consolidated else "No duplicates found"
        ),
    )


@router.post("/normalize-phones", response_model=NormalizePhonesResponse)
async def normalize_phones(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NormalizePhonesResponse:
    """Rewrite every stored phone to canonical form."""
    normalized = await ContactService(db).normalize_phones()
    return NormalizePhonesResponse(
        success=True,
        normalized=normalized,
        message=f"Normalized {normalized} phones",
    )


# ============== Contact CRUD Endpoints ==============

@router.get("", response_model=list[ContactResponse])
async def list_contacts(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ContactResponse]:
    """List all contacts."""
    contacts = await ContactService(db).list_contacts()
    return [_contact_to_response(contact) for contact in contacts]


@router.get("/{contact_id}", response_model=ContactResponse)
async def get_contact(
    contact_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ContactResponse:
    """Get a contact; viewing it counts as the latest contact date."""
    contact = await ContactService(db).get_contact(contact_id, touch=True)
    if not contact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact not found",
        )
    return _contact_to_response(contact)


@router.post("", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    request: CreateContactRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ContactResponse:
    """Create a contact; the phone is stored in canonical form."""
    _check_category(request.category)
    contact = await ContactService(db).create_contact(**request.model_dump())
    return _contact_to_response(contact)


@router.put("/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: int,
    request: UpdateContactRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ContactResponse:
    """Update a contact's information."""
    fields = request.model_dump(exclude_unset=True)
    _check_category(fields.get("category"))
    contact = await ContactService(db).update_contact(contact_id, **fields)
    if not contact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact not found",
        )
    return _contact_to_response(contact)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Permanently delete a contact.

    Contacts with conversations, opportunities or tasks are refused with 409;
    merge them into another contact with consolidate-duplicates instead.
    """
    try:
        deleted = await ContactService(db).delete_contact(contact_id)
    except ContactHasDependents as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact not found",
        )

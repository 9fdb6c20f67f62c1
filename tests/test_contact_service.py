"""Tests for contact and conversation services."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.domain.services.contact_service import ContactHasDependents, ContactService
from app.domain.services.conversation_service import ConversationService
from app.persistence.models.contact import Contact
from app.persistence.models.conversation import Conversation
from app.persistence.models.opportunity import Opportunity
from app.persistence.models.task import Task


async def _add_contact(session, name, phone, created_at):
    contact = Contact(name=name, email="", phone=phone, tags=[], created_at=created_at, updated_at=created_at)
    session.add(contact)
    await session.commit()
    await session.refresh(contact)
    return contact


@pytest.mark.asyncio
async def test_create_contact_canonicalizes_phone(db_session):
    service = ContactService(db_session)

    contact = await service.create_contact(name="Ana", email="ana@example.com", phone="(55) 1234-5678")

    assert contact.phone == "+525512345678"
    assert contact.category == "prospecto"
    assert contact.tags == []


@pytest.mark.asyncio
async def test_create_contact_drops_unparseable_phone(db_session):
    service = ContactService(db_session)

    contact = await service.create_contact(name="Ana", email="", phone="12345")

    assert contact.phone is None


@pytest.mark.asyncio
async def test_update_contact_canonicalizes_phone(db_session):
    service = ContactService(db_session)
    contact = await service.create_contact(name="Ana", email="")

    updated = await service.update_contact(contact.id, phone="+5215512345678", company="ACME")

    assert updated.phone == "+525512345678"
    assert updated.company == "ACME"
    assert await service.update_contact(9999, name="Nadie") is None


@pytest.mark.asyncio
async def test_get_contact_touch_sets_last_contact_date(db_session):
    service = ContactService(db_session)
    contact = await service.create_contact(name="Ana", email="")
    assert contact.last_contact_date is None

    touched = await service.get_contact(contact.id, touch=True)

    assert touched.last_contact_date is not None


@pytest.mark.asyncio
async def test_consolidate_duplicates_keeps_oldest_and_moves_history(db_session):
    base = datetime(2025, 1, 1)
    oldest = await _add_contact(db_session, "Ana", "5512345678", base)
    newer = await _add_contact(db_session, "Ana WhatsApp", "+5215512345678", base + timedelta(days=3))
    middle = await _add_contact(db_session, "Ana B", "525512345678", base + timedelta(days=1))
    other = await _add_contact(db_session, "Luis", "+525598765432", base)

    db_session.add_all([
        Conversation(contact_id=newer.id, content="hola", type="whatsapp", direction="entrante", channel="whatsapp"),
        Conversation(contact_id=middle.id, content="llamada", type="llamada"),
        Opportunity(contact_id=newer.id, title="Ana WhatsApp - Oportunidad"),
        Task(contact_id=middle.id, title="Llamar", due_date=base),
    ])
    await db_session.commit()

    result = await ContactService(db_session).consolidate_duplicates()

    assert result.consolidated == 2
    assert sorted(result.consolidated_ids) == sorted([newer.id, middle.id])

    remaining = (await db_session.execute(select(Contact.id, Contact.phone).order_by(Contact.id))).all()
    assert [tuple(row) for row in remaining] == [(oldest.id, "+525512345678"), (other.id, "+525598765432")]

    for model in (Conversation, Opportunity, Task):
        owners = (await db_session.execute(select(model.contact_id))).scalars().all()
        assert owners and set(owners) == {oldest.id}


@pytest.mark.asyncio
async def test_consolidate_without_duplicates_is_noop(db_session):
    await _add_contact(db_session, "Ana", "+525512345678", datetime(2025, 1, 1))
    await _add_contact(db_session, "Sin teléfono", None, datetime(2025, 1, 1))

    result = await ContactService(db_session).consolidate_duplicates()

    assert result.consolidated == 0
    assert result.consolidated_ids == []


@pytest.mark.asyncio
async def test_normalize_phones(db_session):
    await _add_contact(db_session, "Ana", "55 1234 5678", datetime(2025, 1, 1))
    await _add_contact(db_session, "Luis", "+525598765432", datetime(2025, 1, 1))
    await _add_contact(db_session, "Raro", "123", datetime(2025, 1, 1))

    changed = await ContactService(db_session).normalize_phones()

    assert changed == 1
    phones = (await db_session.execute(select(Contact.phone).order_by(Contact.id))).scalars().all()
    assert phones == ["+525512345678", "+525598765432", "123"]


@pytest.mark.asyncio
async def test_manual_conversation_adds_score(db_session):
    contact = await ContactService(db_session).create_contact(name="Ana", email="")
    service = ConversationService(db_session)

    await service.create_conversation(contact.id, "Llamada de seguimiento", type="llamada")
    await service.create_conversation(contact.id, "Nota")

    score = (await db_session.execute(select(Contact.score).where(Contact.id == contact.id))).scalar_one()
    assert score == 10
    history = await service.list_by_contact(contact.id)
    assert [c.content for c in history] == ["Llamada de seguimiento", "Nota"]


@pytest.mark.asyncio
async def test_list_recent_returns_latest_per_contact(db_session):
    base = datetime(2025, 1, 1)
    ana = await _add_contact(db_session, "Ana", "+525512345678", base)
    luis = await _add_contact(db_session, "Luis", "+525598765432", base)
    db_session.add_all([
        Conversation(contact_id=ana.id, content="primero", created_at=base),
        Conversation(contact_id=luis.id, content="luis", created_at=base + timedelta(hours=1)),
        Conversation(contact_id=ana.id, content="ultimo", created_at=base + timedelta(hours=2)),
        Conversation(contact_id=None, content="huerfano", created_at=base + timedelta(hours=3)),
    ])
    await db_session.commit()

    recent = await ConversationService(db_session).list_recent(limit=10)

    assert [(r.contact.name, r.conversation.content) for r in recent] == [("Ana", "ultimo"), ("Luis", "luis")]

    limited = await ConversationService(db_session).list_recent(limit=1)
    assert len(limited) == 1


@pytest.mark.asyncio
async def test_delete_by_contact(db_session):
    contact = await ContactService(db_session).create_contact(name="Ana", email="")
    service = ConversationService(db_session)
    await service.create_conversation(contact.id, "uno")
    await service.create_conversation(contact.id, "dos")

    assert await service.delete_by_contact(contact.id) == 2
    assert await service.list_by_contact(contact.id) == []


@pytest.mark.asyncio
async def test_delete_contact_with_history_is_refused(db_session):
    service = ContactService(db_session)
    contact = await service.create_contact(name="Ana", email="")
    await ConversationService(db_session).create_conversation(contact.id, "hola")

    with pytest.raises(ContactHasDependents) as exc_info:
        await service.delete_contact(contact.id)

    assert exc_info.value.dependents == 1
    owners = (await db_session.execute(select(Conversation.contact_id))).scalars().all()
    assert owners == [contact.id]
    assert await service.get_contact(contact.id) is not None


@pytest.mark.asyncio
async def test_delete_contact_without_history(db_session):
    service = ContactService(db_session)
    contact = await service.create_contact(name="Ana", email="")

    assert await service.delete_contact(contact.id)
    assert await service.delete_contact(contact.id) is False

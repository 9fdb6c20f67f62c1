"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.infrastructure.media_storage import MediaStorage
from app.persistence.database import Base, get_db
from app.persistence.models import *  # noqa: F401, F403
from app.persistence.store import SqlConversationStore
from app.settings import settings
from tests.fakes import FakeTransport


@pytest.fixture
async def db_session():
    """Create a test database session."""
    # Use in-memory SQLite for testing
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(tmp_path):
    """Session factory on a file-backed SQLite database.

    Every session gets its own connection, like the production pool, so
    concurrent store calls behave as they would against a real database.
    """
    db_path = tmp_path / "test.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    engine.sync_engine.dispose()


@pytest.fixture
def store(session_factory):
    return SqlConversationStore(session_factory)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def media_storage(tmp_path):
    return MediaStorage(media_dir=str(tmp_path / "media"), url_prefix="/api/v1/whatsapp/media")


@pytest.fixture
def client(session_factory, monkeypatch):
    """Create a test FastAPI client backed by the file database."""
    from fastapi.testclient import TestClient
    from app.main import app

    monkeypatch.setattr(settings, "auto_create_tables", False)
    monkeypatch.setattr(settings, "whatsapp_auto_init", False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


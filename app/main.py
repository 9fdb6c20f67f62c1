"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.domain.services.message_reconciler import MessageReconciler
from app.domain.services.whatsapp_session import SessionManager, whatsapp_enabled
from app.infrastructure.redis import redis_client
from app.logging_config import setup_logging
from app.persistence.database import AsyncSessionLocal, create_tables
from app.persistence.store import SqlConversationStore
from app.settings import settings

# Setup logging
setup_logging()

logger = logging.getLogger(__name__)


def build_session_manager() -> SessionManager:
    """Wire the WhatsApp pipeline: store -> reconciler -> session manager."""
    store = SqlConversationStore(AsyncSessionLocal)
    return SessionManager(
        reconciler=MessageReconciler(store),
        webhook_url=settings.whatsapp_webhook_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    await redis_client.connect()
    if settings.auto_create_tables:
        await create_tables()

    app.state.whatsapp = None
    if whatsapp_enabled():
        app.state.whatsapp = build_session_manager()
        if settings.whatsapp_auto_init:
            try:
                await app.state.whatsapp.initialize()
            except Exception as e:
                # The API stays up; /whatsapp/init can retry
                logger.error(f"WhatsApp auto-init failed: {e}")
    else:
        logger.info("WhatsApp disabled in this environment")

    yield
    # Shutdown
    await redis_client.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Personal CRM API",
    description="Contacts, pipeline and WhatsApp conversation history",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Personal CRM API",
        "version": "0.1.0",
        "docs": "/docs",
    }

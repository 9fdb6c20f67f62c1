"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url(url: str | None = None) -> str:
    """Get database URL converted for an async driver."""
    if url is None:
        url = os.environ.get("DATABASE_URL", "") or settings.database_url
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("sqlite://") and "+aiosqlite" not in url:
        url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        # Clean up any leftover ? or & at the end
        url = url.rstrip('?&')
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"

    # Database (SQLite by default, Postgres via DATABASE_URL)
    database_url: str = "sqlite+aiosqlite:///./crm.db"
    auto_create_tables: bool = True

    # Redis (optional)
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = False  # Disable Redis by default for dev

    # Phone numbering plan
    phone_default_country_code: str = "52"
    phone_mobile_prefix: str = "1"  # legacy "+521" mobile form

    # WhatsApp
    enable_whatsapp: bool = False  # force-enable in production
    whatsapp_auto_init: bool = False
    whatsapp_bridge_url: str = "http://localhost:3000"
    whatsapp_bridge_api_key: str | None = None
    whatsapp_session_name: str = "default"
    whatsapp_webhook_secret: str | None = None
    whatsapp_webhook_url: str | None = None  # public URL of /whatsapp/webhook, sent to the bridge
    whatsapp_bridge_timeout_seconds: float = 30.0
    whatsapp_media_dir: str = "./media/whatsapp"

    # WhatsApp debug trace (JSON lines)
    whatsapp_debug_log: bool = False
    whatsapp_debug_log_path: str = "./logs/whatsapp-debug.log"

    # Webhook redelivery dedup
    message_dedup_ttl_seconds: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()

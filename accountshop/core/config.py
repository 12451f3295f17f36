# accountshop/core/config.py
from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env) in production:
      - DATABASE_URL (Postgres connection string)
      - ADMIN_PASSWORD (shared admin secret, checked server-side only)
      - SESSION_SECRET (signs admin session tokens)

    Optional:
      - SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY (only used when
        IMAGE_STORAGE_STRATEGY="bucket")
    """

    PROJECT_NAME: str = "Account Shop API"
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite:///./accountshop.db"

    # Supabase (image bucket strategy only)
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "accounts"

    # Admin session
    ADMIN_PASSWORD: SecretStr = SecretStr("change-me")
    SESSION_SECRET: SecretStr = SecretStr("change-me-too")
    SESSION_ALG: str = "HS256"
    SESSION_TIMEOUT_SECONDS: int = 5 * 60
    PUBLIC_ENTRY_URL: str = "/"

    # Storefront
    WHATSAPP_NUMBER: str = "258841234567"
    TIMEZONE: str = "Africa/Maputo"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Images
    IMAGE_STORAGE_STRATEGY: Literal["base64", "bucket"] = "base64"
    MAX_IMAGES: int = 4
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    MAX_DOCUMENT_BYTES: int = 900 * 1024

    # Analytics
    EVENT_LOG_CAPACITY: int = 1000
    EVENT_RETENTION_DAYS: int = 30
    STATS_REFRESH_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()

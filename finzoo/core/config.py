# finzoo/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (storage uploads, admin sign-out, user deletion)
      - WHATSAPP_NUMBER (inquiry deep links; sharing is disabled without it)
    """

    PROJECT_NAME: str = "FinZoo Pet Store API"
    API_PREFIX: str = "/api"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    # Storage
    STORAGE_BUCKET: str = "pet-images"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    MAX_VIDEO_BYTES: int = 50 * 1024 * 1024

    # Public URLs: SITE_URL is the storefront, API_BASE_URL is this service
    SITE_URL: str = "http://localhost:3000"
    API_BASE_URL: str = "http://localhost:8000"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    WHATSAPP_NUMBER: str | None = None

    # Local idle timeout, independent of the Supabase token TTL
    INACTIVITY_TIMEOUT_SECONDS: int = 60 * 60
    ACTIVITY_PERSIST_INTERVAL_SECONDS: int = 30
    INACTIVITY_CHECK_INTERVAL_SECONDS: int = 60

    INVENTORY_REFRESH_SECONDS: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()

"""Application settings loaded from environment variables / .env."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the chat API."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Service
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["*"]
    DATABASE_URL: str = "sqlite:///./uraan_chat.db"

    # Object storage (S3-compatible, e.g. Cloudflare R2)
    STORAGE_BUCKET: str = "uraan-chat"
    STORAGE_ENDPOINT_URL: Optional[str] = None
    STORAGE_ACCESS_KEY_ID: Optional[str] = None
    STORAGE_SECRET_ACCESS_KEY: Optional[str] = None
    STORAGE_REGION: str = "auto"
    STORAGE_CDN_URL: Optional[str] = None

    # Uploads
    UPLOAD_KEY_PREFIX: str = "f"
    UPLOAD_URL_TTL_SECONDS: int = 60
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024
    ALLOWED_UPLOAD_TYPES: list[str] = [
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/webp",
        "image/heic",
        "text/plain",
        "application/pdf",
    ]
    DOCUMENT_FETCH_TIMEOUT: float = 30.0

    # Upstream inference providers
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    LLM_TIMEOUT: float = 120.0

    # Title generation
    TITLE_MODEL: str = "google/gemini-flash-1.5"
    TITLE_MAX_TOKENS: int = 50
    TITLE_TEMPERATURE: float = 0.7

    # History
    RECENT_CHATS_PAGE_SIZE: int = 10


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

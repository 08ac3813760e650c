from __future__ import annotations

from functools import lru_cache

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    GEMINI_API_KEY: SecretStr

    GEMINI_MODEL: str = "gemini-2.5-flash"
    EMBEDDING_MODEL: str = "models/text-embedding-004"
    EMBEDDING_DIMENSIONS: int = Field(default=768, gt=0)
    LLM_TIMEOUT_SECONDS: float = Field(default=90.0, gt=0)

    REDIS_URL: str = "redis://localhost:6379/0"
    DRAFT_TTL_SECONDS: int = Field(default=3600, gt=0)

    SEARCH_SIMILARITY_THRESHOLD: float = Field(default=0.5, ge=0, le=1)
    SEARCH_MATCH_COUNT: int = Field(default=5, ge=1)

    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

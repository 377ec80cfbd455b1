from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Content search service settings.

    All values are loaded from environment variables.
    A .env file in the backend directory is also supported.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Database ---
    DATABASE_URL: str = "postgresql+asyncpg://content:content@db:5432/content"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_STATEMENT_TIMEOUT_MS: int = 5000

    # --- Logging ---
    LOG_LEVEL: str = "INFO"

    # --- CORS ---
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # --- Search (GET /search) ---
    SEARCH_DEFAULT_LIMIT: int = 20
    SEARCH_MAX_LIMIT: int = 100
    SEARCH_MAX_QUERY_LENGTH: int = 100

    # --- Suggestions (GET /search/suggestions) ---
    SUGGEST_DEFAULT_LIMIT: int = 10
    SUGGEST_MAX_LIMIT: int = 20
    SUGGEST_DEFAULT_PER_TYPE_LIMIT: int = 5
    SUGGEST_MAX_PER_TYPE_LIMIT: int = 10
    SUGGEST_MAX_QUERY_LENGTH: int = 64

    # --- Scoring overrides, e.g. SEARCH_PARAMS='{"score_exact": 4.0}' ---
    SEARCH_PARAMS: dict[str, Any] = {}

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver."""
        url = self.DATABASE_URL
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings singleton."""
    return Settings()

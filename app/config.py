"""
Settings, read once at import from the environment or a local .env file.

Environment variables win over .env, which wins over the defaults below.
Names are case-insensitive, so DATABASE_URL and database_url both work.

    from app.config import settings
    settings.TRANSACTIONS_MAX_LIMIT
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the SkillLink API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "SkillLink API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local use; swap to a PostgreSQL (asyncpg) URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/skilllink.db"

    # --- Authentication ---
    # REQUIRED: no default, a real secret must be provided
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Credits ---
    TRANSACTIONS_DEFAULT_LIMIT: int = 50
    TRANSACTIONS_MAX_LIMIT: int = 200

    # --- Matchmaking ---
    # Upper bound on skills scored per for-skill request
    MATCHMAKING_CANDIDATE_POOL: int = 500
    MATCHMAKING_DEFAULT_LIMIT: int = 10
    SEARCH_DEFAULT_LIMIT: int = 30


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()

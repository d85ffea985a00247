"""
Application configuration via pydantic-settings.

Values come from the process environment first, then from a .env file in
the working directory, then from the defaults below. .env.example lists
every key; copy it to .env for local runs.

Usage:
    from trackhub.config import settings
    settings.DEFAULT_CURRENCY
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Track Hub finance API.

    SECRET_KEY has no default and must be provided: it is the secret the
    auth backend signs access tokens with.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Track Hub Finance API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Record store ---
    # SQLite for local use; any SQLAlchemy async URL works
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/trackhub.db"

    # --- Authentication ---
    # REQUIRED: shared secret of the backend that issues access tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # --- Wallets ---
    # Display-only currency code for wallets created without one
    DEFAULT_CURRENCY: str = "NPR"

    # --- Ledger engine ---
    # Optimistic balance writes re-read and retry this many times on a
    # version conflict before giving up, sleeping roughly
    # attempt * BALANCE_WRITE_RETRY_DELAY_SECONDS (jittered) in between
    BALANCE_WRITE_MAX_ATTEMPTS: int = 5
    BALANCE_WRITE_RETRY_DELAY_SECONDS: float = 0.01
    # Each compensating write is attempted this many times, sleeping
    # attempt * COMPENSATION_RETRY_DELAY_SECONDS between attempts
    COMPENSATION_MAX_ATTEMPTS: int = 3
    COMPENSATION_RETRY_DELAY_SECONDS: float = 0.05

    # --- CORS ---
    # The web frontend (Vite dev server by default)
    ALLOWED_ORIGINS: list[str] = ["http://localhost:5173"]


# Module-level instance shared by every import
settings = Settings()

"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Ledger Engine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/ledger_engine"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Ledger
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")
    REFERENCE_PREFIX: str = os.getenv("REFERENCE_PREFIX", "TXN")
    BALANCE_CACHE_ENABLED: bool = (
        os.getenv("BALANCE_CACHE_ENABLED", "true").lower() == "true"
    )
    LEDGER_PAGE_SIZE: int = int(os.getenv("LEDGER_PAGE_SIZE", "500"))


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls. This avoids reading
    environment variables repeatedly.
    """
    return Settings()

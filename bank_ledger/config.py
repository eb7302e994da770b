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
    APP_NAME: str = "Bank Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/bank_ledger"
    )
    # Seconds a connection waits on a locked row/table before the
    # driver gives up and the operation surfaces as a conflict.
    DB_LOCK_TIMEOUT: float = float(os.getenv("DB_LOCK_TIMEOUT", "10"))

    # Ledger rules
    # When false, withdrawals ignore the customer's overdraft limit
    # and require balance >= amount.
    OVERDRAFT_ENABLED: bool = (
        os.getenv("OVERDRAFT_ENABLED", "true").lower() == "true"
    )
    CONFLICT_RETRIES: int = int(os.getenv("CONFLICT_RETRIES", "3"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Using lru_cache means the Settings object is created once
    and reused for all subsequent calls.
    """
    return Settings()

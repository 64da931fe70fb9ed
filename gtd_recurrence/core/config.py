"""
Engine configuration using Pydantic Settings.

Values are read from environment variables (or a local .env file) once and cached.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Recurrence engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    DEBUG: bool = False

    # ===========================================
    # Logging
    # ===========================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ===========================================
    # Recurrence defaults
    # ===========================================
    # IANA zone used when a completion timestamp has to be created locally
    DEFAULT_TIMEZONE: str = "UTC"

    # Strategy assumed when a persisted recurrence does not carry one
    DEFAULT_RECURRENCE_STRATEGY: Literal["strict", "fluid"] = "strict"

    # Search windows for pattern-based rules, counted in interval steps.
    # When nothing resolves inside the window the plain interval is added instead.
    RECURRENCE_WEEKLY_LOOKAHEAD: int = Field(default=52, ge=1)
    RECURRENCE_MONTHLY_LOOKAHEAD: int = Field(default=12, ge=1)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()

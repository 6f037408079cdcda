"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App settings
    app_name: str = "Title Splitting Calculator"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Offer policy
    offer_ratio: float = 0.865
    offer_policy: str = "ratio"  # "ratio" | "cost_deduction"
    preserve_manual_overrides: bool = False

    # Scenario assumptions
    post_refurb_flat_value: float = 150000
    refinance_ltv: float = 0.75
    financing_basis: str = "purchase_price"  # "purchase_price" | "offer_price"

    # Listing extraction
    extraction_provider: str = "mock"  # "mock" | "http"
    extraction_delay_seconds: float = 1.5
    extraction_timeout: int = 30

    # In-memory calculator sessions
    max_sessions: int = 1000

    class Config:
        env_file = get_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

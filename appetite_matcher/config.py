"""Appetite matcher configuration — loaded from environment variables and .env file."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parent.parent / ".env"),
        env_file_encoding="utf-8",
        env_prefix="APPETITE_",
        extra="ignore",
    )

    # Database (appetite guides + persisted match results)
    database_url: str = "sqlite+aiosqlite:///./appetite_matcher.db"

    # API
    api_key: str = "appetite-dev-key-change-me"
    api_port: int = 8002

    # Scoring
    weights_file: Optional[str] = None

    # Presentation
    currency_symbol: str = "£"

    # Logging
    log_level: str = "INFO"


settings = Settings()

"""
config.py
=========
Central configuration for the backend.
Uses pydantic-settings to load from .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── App ──────────────────────────────────────
    APP_NAME: str = "Doc-Aware Code Reviewer"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Server ───────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: list = [
        "http://localhost:3000",
        "*"                         # Dev: allow all
    ]

    # Inbound key checked against the X-API-Key header.
    # Leave unset to disable the check (local development).
    API_KEY: Optional[str] = None

    # ── Model Provider (OpenAI-compatible) ────────
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    MODEL_TIMEOUT: float = 60.0    # Seconds per model call

    # Detection profile: language + framework classification
    DETECTION_MODEL: str = "gpt-4o-mini"
    DETECTION_TEMPERATURE: float = 0.1

    # Review profile: the full code review
    REVIEW_MODEL: str = "gpt-4o"
    REVIEW_TEMPERATURE: float = 0.3
    REVIEW_MAX_TOKENS: int = 8192

    # ── Documentation Provider (Context7) ─────────
    # Optional. Without a key requests go out unauthenticated.
    CONTEXT7_API_KEY: Optional[str] = None
    CONTEXT7_BASE_URL: str = "https://context7.com/api/v1"
    CONTEXT7_TIMEOUT: float = 15.0

    # ── Limits ────────────────────────────────────
    MAX_CODE_LENGTH: int = 20000   # Characters

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()

# src/edumanager/settings.py
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Environment-driven configuration.

    All fields read from the environment with prefix EDUMANAGER_ (case-insensitive),
    or from a local .env file. A handful also accept the unprefixed names used by
    the hosting platform (DATABASE_URL, OPENAI_API_KEY, FLUTTERWAVE_SECRET_KEY).
    """

    # ---- App ----
    APP_NAME: str = "EduManager"
    APP_VERSION: str = "0.1.0"

    # ---- DB ----
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./edumanager.db",
        validation_alias=AliasChoices("EDUMANAGER_DATABASE_URL", "DATABASE_URL"),
    )
    DB_ECHO: bool = False

    # ---- Logging ----
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ---- Repositories ----
    STUDENT_TEMP_PASSWORD: str = "temp123456"
    ASSISTANT_LOG_LIMIT: int = Field(50, gt=0)

    # ---- Assistant (OpenAI) ----
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("EDUMANAGER_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    OPENAI_MODEL: str = "gpt-4"
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_TIMEOUT_SECONDS: float = 30.0
    OPENAI_MAX_TOKENS: int = 500
    OPENAI_TEMPERATURE: float = 0.7

    # ---- Payments (Flutterwave) ----
    FLUTTERWAVE_SECRET_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "EDUMANAGER_FLUTTERWAVE_SECRET_KEY", "FLUTTERWAVE_SECRET_KEY"
        ),
    )
    FLUTTERWAVE_BASE_URL: str = "https://api.flutterwave.com/v3"
    FLUTTERWAVE_TIMEOUT_SECONDS: float = 30.0
    PUBLIC_URL: str = "http://localhost:3000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="EDUMANAGER_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @property
    def payment_redirect_url(self) -> str:
        return f"{self.PUBLIC_URL.rstrip('/')}/payment/success"

    @property
    def payment_logo_url(self) -> str:
        return f"{self.PUBLIC_URL.rstrip('/')}/favicon.ico"


@lru_cache
def get_settings() -> Settings:
    return Settings()

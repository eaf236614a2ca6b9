"""Configuration management for the ShortiFy service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Build + │  │ Return  │
│ validate│  │ cached  │
│ Settings│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortify.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    ttl = settings.cache_ttl_seconds

Key Behaviours
===============
- Settings are validated once and cached after first access.
- Settings are frozen: assigning to a field raises ValidationError.
- BASE_URL must be an absolute http/https URL.
- CACHE_EXPIRATION_MINUTES is bounded to 1-1440.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache
from urllib.parse import urlsplit

import validators
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shortify"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Public prefix of every shortened URL
    BASE_URL: str = "http://localhost:8080"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortify:shortify@db:5432/shortify"
    DATABASE_POOL_SIZE: int = Field(default=20, ge=1)
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0)

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_KEY_PREFIX: str = "ShortiFy:shortify:"
    CACHE_EXPIRATION_MINUTES: int = Field(default=60, ge=1, le=1440)

    # Short code allocation policy
    SHORT_CODE_LENGTH: int = Field(default=6, ge=1, le=10)
    MAX_ALLOCATION_ATTEMPTS: int = Field(default=10, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        frozen=True,
    )

    @field_validator("BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if urlsplit(v).scheme not in ("http", "https") or not validators.url(v, simple_host=True):
            raise ValueError("BASE_URL must be an absolute http or https URL")
        return v

    @property
    def cache_ttl_seconds(self) -> int:
        return self.CACHE_EXPIRATION_MINUTES * 60

    def shortened_url_for(self, short_code: str) -> str:
        return f"{self.BASE_URL.rstrip('/')}/{short_code}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()

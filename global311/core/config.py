"""
Configuration management for the Global-311 pin service.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. The API, the consensus engine and the scripts all consume the
shared `settings` instance so thresholds and datastore locations stay
consistent across processes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # General application settings
    API_TITLE: str = "Global-311 API"
    API_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")

    # Security / auth
    SECRET_KEY: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Document store
    STORE_BACKEND: str = Field("mongo", pattern=r"^(mongo|memory)$")
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "global311"
    PINS_COLLECTION: str = "pins"

    # Consensus rules
    PIN_QUORUM: PositiveInt = 2
    DISPUTE_MIN_DECLINES: PositiveInt = 3
    MAX_WRITE_RETRIES: PositiveInt = 3
    DEFAULT_LIST_LIMIT: PositiveInt = 100
    MAX_LIST_LIMIT: PositiveInt = 500
    ALLOW_ANONYMOUS_READ: bool = False

    # Address lookup
    GEOCODER_URL: AnyUrl = Field("https://nominatim.openstreetmap.org")
    GEOCODER_USER_AGENT: str = "Global-311"
    GEOCODER_TIMEOUT_SECONDS: float = 10.0

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()

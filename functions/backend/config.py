"""
Configuration and settings for the club events backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the club events service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Firebase project (Firestore + Admin SDK)
    google_cloud_project: Optional[str] = Field(default=None)

    # Firebase Auth REST API (Identity Toolkit)
    firebase_api_key: Optional[str] = Field(default=None)
    firebase_auth_emulator_host: Optional[str] = Field(default=None)
    idp_request_uri: str = Field(default="http://localhost")
    auth_request_timeout: int = Field(default=30)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="CLUB_EVENTS_USE_IN_MEMORY_BACKENDS"
    )
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

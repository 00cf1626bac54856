"""
Configuration and settings for the TravelTrail CMS backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)
    log_level: str = Field(default="INFO")

    # Browser origin allowed to call the API with credentials
    cors_origin: str = Field(default="http://localhost:3000")

    # MongoDB
    mongodb_uri: Optional[str] = Field(default=None)
    database_name: str = Field(default="traveltrailCMS")
    mongo_timeout_ms: int = Field(default=5000)

    # Admin auth. No fallbacks: missing values are reported at boot or login.
    admin_secret: Optional[str] = Field(default=None)
    admin_username: Optional[str] = Field(default=None)
    admin_password_hash: Optional[str] = Field(default=None)

    # Google Apps Script webhook behind /api/sheets-proxy
    google_script_url: Optional[str] = Field(default=None)
    gas_secret: Optional[str] = Field(default=None)
    relay_timeout_seconds: float = Field(default=30.0)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="TRAVELTRAIL_USE_IN_MEMORY_BACKENDS"
    )

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_username and self.admin_password_hash)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()

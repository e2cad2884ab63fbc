"""
Configuration Management for Simple Bookkeeping

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_credentials_path() -> str:
    """Saved credential location (XDG compliant)."""
    xdg_config_home = os.getenv("XDG_CONFIG_HOME", str(Path.home() / ".config"))
    return str(Path(xdg_config_home) / "simple-bookkeeping" / "credentials.json")


class DropboxSettings(BaseSettings):
    """Dropbox remote store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DROPBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_key: str = Field(
        default="oa453zne5pnx0u4",
        description="Dropbox app key (public PKCE client id)"
    )
    redirect_uri: str = Field(
        default="http://localhost:8080/",
        description="Redirect URI registered for the Dropbox app"
    )

    # Optional pre-issued credential (skips the browser login)
    access_token: Optional[str] = Field(
        default=None,
        description="Dropbox access token"
    )
    refresh_token: Optional[str] = Field(
        default=None,
        description="Dropbox refresh token (offline access)"
    )

    # Endpoints
    api_url: str = Field(default="https://api.dropboxapi.com/2")
    content_url: str = Field(default="https://content.dropboxapi.com/2")
    oauth_url: str = Field(default="https://api.dropboxapi.com/oauth2/token")
    authorize_url: str = Field(default="https://www.dropbox.com/oauth2/authorize")

    # Transport policy
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for transient transport failures"
    )
    retry_wait_min: float = Field(
        default=1.0,
        ge=0,
        description="Minimum backoff between attempts (seconds)"
    )
    retry_wait_max: float = Field(
        default=10.0,
        ge=0,
        description="Maximum backoff between attempts (seconds)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    storage_backend: Literal["dropbox", "memory"] = Field(
        default="dropbox",
        description="Remote store backend"
    )
    credentials_path: str = Field(
        default_factory=_default_credentials_path,
        description="Where the saved Dropbox credential is kept"
    )

    # Ledger behaviour
    uncategorized_label: str = Field(
        default="未分類",
        min_length=1,
        description="Destination written for expenses without a category"
    )
    suggestion_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Distinct recent sources/destinations offered as suggestions"
    )

    @field_validator('uncategorized_label')
    @classmethod
    def validate_label(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("uncategorized_label cannot be blank")
        return v.strip()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def dropbox(self) -> DropboxSettings:
        return DropboxSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool | str]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("dropbox", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

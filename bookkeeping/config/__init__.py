"""Configuration package."""

from bookkeeping.config.settings import (
    AppSettings,
    DropboxSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "DropboxSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]

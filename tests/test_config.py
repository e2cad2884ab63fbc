"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from bookkeeping.config import (
    AppSettings,
    DropboxSettings,
    get_settings,
    validate_all_settings,
)


class TestDropboxSettings:
    """DROPBOX_* environment variables."""

    def test_defaults(self):
        settings = DropboxSettings()
        assert settings.api_url == "https://api.dropboxapi.com/2"
        assert settings.access_token is None
        assert settings.max_attempts == 3

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DROPBOX_ACCESS_TOKEN", "abc")
        monkeypatch.setenv("DROPBOX_MAX_ATTEMPTS", "5")
        settings = DropboxSettings()
        assert settings.access_token == "abc"
        assert settings.max_attempts == 5

    def test_attempts_bounded(self):
        with pytest.raises(ValidationError):
            DropboxSettings(max_attempts=0)


class TestAppSettings:
    """Application-level settings."""

    def test_defaults(self, tmp_path):
        settings = AppSettings()
        assert settings.storage_backend == "dropbox"
        assert settings.uncategorized_label == "未分類"
        assert settings.suggestion_limit == 10
        assert settings.credentials_path == str(tmp_path / "credentials.json")

    def test_blank_label_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(uncategorized_label="   ")

    def test_label_trimmed(self):
        assert AppSettings(uncategorized_label=" Misc ").uncategorized_label == "Misc"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(storage_backend="s3")


class TestSettingsRoot:
    """Cached root settings."""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all(self):
        assert validate_all_settings() == {"dropbox": True, "app": True}

    def test_validate_all_reports_errors(self, monkeypatch):
        monkeypatch.setenv("SUGGESTION_LIMIT", "0")
        get_settings.cache_clear()
        results = validate_all_settings()
        assert results["dropbox"] is True
        assert results["app"] is False
        assert "suggestion_limit" in results["app_error"]

"""Pytest configuration and fixtures."""

import pytest

from bookkeeping.audit import AuditLogger
from bookkeeping.config import get_settings
from bookkeeping.ledger import LedgerStore, ProfileDirectory
from bookkeeping.orchestrator import LedgerApp
from bookkeeping.validation import LedgerValidator

from tests.helpers import UNCATEGORIZED, FlakyBlobStore


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Keep tests away from real tokens and the real credential file."""
    for name in ("DROPBOX_ACCESS_TOKEN", "DROPBOX_REFRESH_TOKEN", "STORAGE_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CREDENTIALS_PATH", str(tmp_path / "credentials.json"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(UNCATEGORIZED)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def store() -> FlakyBlobStore:
    return FlakyBlobStore()


@pytest.fixture
def directory(store, validator, audit_logger) -> ProfileDirectory:
    return ProfileDirectory(store, validator, audit_logger)


@pytest.fixture
def ledger(store, directory, validator, audit_logger) -> LedgerStore:
    return LedgerStore(store, directory, validator, audit_logger, suggestion_limit=10)


@pytest.fixture
def app(store, directory, ledger, audit_logger) -> LedgerApp:
    return LedgerApp(store, directory, ledger, audit_logger=audit_logger)

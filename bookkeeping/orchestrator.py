"""
Main Orchestrator for Simple Bookkeeping

This module ties together all the components and defines the flows a
UI (or any other collaborator) drives:
1. Session (login → restore → logout)
2. Profiles (list → switch → create → rename → delete)
3. Ledger (add → update → delete → settings → stats → export)

DESIGN DECISION: The orchestrator enforces the boundaries:
- One mutation or profile operation at a time (a single asyncio.Lock)
- A rejected credential ends the session everywhere, immediately
- Every step is audited

Switching profile happens under the lock, so in-flight work for the old
profile finishes first; the ledger is then reset, which also makes any
load still running for the old profile discard its result.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional

from bookkeeping.audit import AuditLogger
from bookkeeping.config import Settings, get_settings
from bookkeeping.ledger import (
    LedgerStore,
    ProfileDirectory,
    compute_stats,
    destination_options,
    export_csv,
    source_options,
)
from bookkeeping.models.audit import AuditEventType, AuditSeverity
from bookkeeping.models.ledger import (
    LedgerSettings,
    LedgerStats,
    Suggestions,
    SyncResult,
    Transaction,
    TransactionType,
    ValidationIssue,
)
from bookkeeping.services.storage import (
    AuthError,
    BlobStoreInterface,
    CredentialStore,
    DropboxBlobStore,
    DropboxClient,
    InMemoryBlobStore,
    StorageError,
)
from bookkeeping.validation import LedgerValidator, ValidationError


class LedgerApp:
    """
    Collaborator-facing API.

    Every remote call goes through _session_guard: an AuthError clears
    the session, the saved credential, the active profile and the ledger,
    then propagates so the caller can ask for a new login.
    """

    def __init__(
        self,
        store: BlobStoreInterface,
        directory: Optional[ProfileDirectory] = None,
        ledger: Optional[LedgerStore] = None,
        credential_store: Optional[CredentialStore] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._directory = directory or ProfileDirectory(store, audit_logger=self._audit_logger)
        self._ledger = ledger or LedgerStore(store, self._directory, audit_logger=self._audit_logger)
        self._credential_store = credential_store
        self._lock = asyncio.Lock()
        self._profiles = [self._directory.get_active()]

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self._store.is_authenticated

    def _dropbox(self) -> DropboxBlobStore:
        if not isinstance(self._store, DropboxBlobStore):
            raise StorageError(f"{type(self._store).__name__} does not support login")
        return self._store

    def authorization_url(self, state: Optional[str] = None) -> str:
        """URL the user opens to grant access."""
        return self._dropbox().authorization_url(state)

    async def complete_login(self, code: str) -> None:
        """
        Exchange the code from the redirect and remember the credential.

        Raises:
            AuthError: the code was rejected (nothing is saved)
        """
        credential = await self._dropbox().finish_authorization(code)
        if self._credential_store:
            self._credential_store.save(credential)
        self._audit_logger.record(
            AuditEventType.SESSION_STARTED,
            "Logged in",
            source="login",
        )

    def restore_session(self) -> bool:
        """
        Pick up the credential saved by an earlier login.

        Returns:
            True if the store is usable afterwards
        """
        if self._credential_store is None or not isinstance(self._store, DropboxBlobStore):
            return self._store.is_authenticated

        saved = self._credential_store.load()
        if saved is None:
            return self._store.is_authenticated

        self._store.restore_session(saved)
        self._audit_logger.record(
            AuditEventType.SESSION_STARTED,
            "Session restored from saved credential",
            source="restore",
        )
        return True

    async def logout(self) -> None:
        """Revoke the token (best effort), then forget everything local."""
        async with self._lock:
            was_authenticated = self._store.is_authenticated
            revoked = await self._store.teardown()
            if was_authenticated and not revoked:
                self._audit_logger.record(
                    AuditEventType.TOKEN_REVOKE_FAILED,
                    "Token could not be revoked; cleared locally",
                    severity=AuditSeverity.WARNING,
                )
            self._clear_local_state()
            self._audit_logger.record(AuditEventType.SESSION_CLEARED, "Logged out")

    def _clear_local_state(self) -> None:
        if self._credential_store:
            self._credential_store.clear()
        self._directory.reset()
        self._ledger.reset()
        self._profiles = [self._directory.get_active()]

    @asynccontextmanager
    async def _session_guard(self) -> AsyncIterator[None]:
        try:
            yield
        except AuthError as e:
            self._audit_logger.log_forced_logout(e)
            self._store.clear_session()
            self._clear_local_state()
            raise

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    @property
    def active_profile(self) -> str:
        return self._directory.get_active()

    @property
    def profiles(self) -> list[str]:
        """Profiles as of the last load_profiles() (no remote call)."""
        return list(self._profiles)

    async def start(self) -> list[str]:
        """Load the profile list, then the active ledger."""
        profiles = await self.load_profiles()
        await self.load()
        return profiles

    async def load_profiles(self) -> list[str]:
        async with self._lock, self._session_guard():
            self._profiles = await self._directory.list_profiles()
            if self._directory.get_active() not in self._profiles:
                self._directory.reset()
            return list(self._profiles)

    async def load(self) -> bool:
        """(Re)load the active ledger. Errors propagate; nothing is changed."""
        async with self._lock, self._session_guard():
            return await self._ledger.load()

    async def switch_profile(self, name: str) -> None:
        """
        Make `name` the active profile and load it.

        Raises:
            ValidationError: unknown profile (nothing changes)
        """
        async with self._lock, self._session_guard():
            await self._switch(name)

    async def _switch(self, name: str) -> None:
        self._profiles = await self._directory.list_profiles()
        if name not in self._profiles:
            raise ValidationError([ValidationIssue(
                field="name",
                issue_type="not_found",
                message=f"Profile {name} does not exist",
            )])

        previous = self._directory.get_active()
        self._ledger.reset()
        self._directory.set_active(name)
        self._audit_logger.record(
            AuditEventType.PROFILE_SWITCHED,
            f"Switched from {previous} to {name}",
            profile=name,
            previous=previous,
        )
        await self._ledger.load()

    async def create_profile(self, name: str) -> str:
        """Register a profile and switch to it. Returns the trimmed name."""
        async with self._lock, self._session_guard():
            created = await self._directory.create(name)
            await self._switch(created)
            return created

    async def rename_profile(self, old: str, new: str) -> str:
        async with self._lock, self._session_guard():
            renamed = await self._directory.rename(old, new)
            self._profiles = await self._directory.list_profiles()
            return renamed

    async def delete_profile(self, name: str) -> None:
        """Delete a profile; if it was active, Default is loaded."""
        async with self._lock, self._session_guard():
            active = self._directory.get_active()
            deleted = await self._directory.delete(name)
            if deleted == active:
                await self._switch(self._directory.get_active())
            else:
                self._profiles = await self._directory.list_profiles()

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    @property
    def transactions(self) -> list[Transaction]:
        return self._ledger.get_all()

    @property
    def settings(self) -> LedgerSettings:
        return self._ledger.get_settings()

    async def add_transactions(self, transactions: list[Transaction]) -> SyncResult:
        async with self._lock, self._session_guard():
            return await self._ledger.add(transactions)

    async def update_transaction(self, transaction: Transaction) -> SyncResult:
        async with self._lock, self._session_guard():
            return await self._ledger.update(transaction)

    async def delete_transaction(self, transaction_id: str) -> SyncResult:
        async with self._lock, self._session_guard():
            return await self._ledger.remove(transaction_id)

    async def save_settings(self, settings: LedgerSettings) -> SyncResult:
        async with self._lock, self._session_guard():
            return await self._ledger.save_settings(settings)

    def get_stats(self, today: Optional[date] = None) -> LedgerStats:
        settings = self._ledger.get_settings()
        return compute_stats(
            self._ledger.get_all(),
            settings.common_sources,
            settings.initial_balances,
            today=today,
        )

    def get_suggestions(self) -> Suggestions:
        return self._ledger.suggestions

    def get_form_options(self, tx_type: TransactionType) -> tuple[list[str], list[str]]:
        """(source choices, destination choices) for a transaction type."""
        settings = self._ledger.get_settings()
        suggestions = self._ledger.suggestions
        return (
            source_options(tx_type, settings, suggestions),
            destination_options(tx_type, settings, suggestions),
        )

    def export_csv(self, month: Optional[str] = None) -> bytes:
        return export_csv(self._ledger.get_all(), month)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BlobStoreInterface] = None,
) -> LedgerApp:
    """
    Factory function to create all application components.

    Args:
        settings: Configuration (defaults to get_settings())
        store: Use this blob store instead of the configured backend

    The saved credential, if any, is restored before returning.
    """
    settings = settings or get_settings()
    app_settings = settings.app

    if store is None:
        if app_settings.storage_backend == "memory":
            store = InMemoryBlobStore()
        else:
            store = DropboxBlobStore(DropboxClient(settings.dropbox))

    credential_store = None
    if isinstance(store, DropboxBlobStore):
        credential_store = CredentialStore(app_settings.credentials_path)

    audit_logger = AuditLogger()
    validator = LedgerValidator(app_settings.uncategorized_label)
    directory = ProfileDirectory(store, validator, audit_logger)
    ledger = LedgerStore(
        store,
        directory,
        validator,
        audit_logger,
        suggestion_limit=app_settings.suggestion_limit,
    )

    app = LedgerApp(store, directory, ledger, credential_store, audit_logger)
    app.restore_session()
    return app

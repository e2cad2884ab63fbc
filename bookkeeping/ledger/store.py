"""
Ledger Store

In-memory transactions and settings of the active profile, kept in step
with the remote store.

DESIGN DECISION: Mutations are optimistic.
1. Local state changes first
2. The full document is written
3. A failed write is reported as SyncResult(synced=False), never rolled back

Loads are the opposite: any failure aborts the load, leaves local state as
it was and propagates. A ledger is never built from a partial read.

CRITICAL: A transactions file is only created when exists() CONFIRMED it is
absent. An exists() that raised means "unknown", and unknown is never
treated as empty.
"""

from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from bookkeeping.audit import AuditLogger
from bookkeeping.config import get_settings
from bookkeeping.ledger.profiles import (
    SETTINGS_RESOURCE,
    TRANSACTIONS_RESOURCE,
    ProfileDirectory,
)
from bookkeeping.ledger.suggestions import build_suggestions
from bookkeeping.models.audit import AuditEventType, AuditSeverity
from bookkeeping.models.ledger import (
    LedgerSettings,
    Suggestions,
    SyncResult,
    Transaction,
)
from bookkeeping.services.storage import (
    AuthError,
    BlobStoreInterface,
    StorageError,
)
from bookkeeping.validation import LedgerValidator


_TRANSACTION_LIST = TypeAdapter(list[Transaction])


class LedgerStore:
    """
    Transactions and settings of the active profile.

    Callers must serialize mutations; LedgerApp does so with a lock.
    """

    def __init__(
        self,
        store: BlobStoreInterface,
        directory: ProfileDirectory,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        suggestion_limit: Optional[int] = None,
    ):
        self._store = store
        self._directory = directory
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._suggestion_limit = suggestion_limit or get_settings().app.suggestion_limit

        self._transactions: list[Transaction] = []
        self._settings = LedgerSettings.defaults()
        self.suggestions = Suggestions()
        self._generation = 0

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_all(self) -> list[Transaction]:
        """Transactions in stored order (a copy)."""
        return list(self._transactions)

    def get_settings(self) -> LedgerSettings:
        return self._settings

    @property
    def generation(self) -> int:
        return self._generation

    # -------------------------------------------------------------------------
    # Load / reset
    # -------------------------------------------------------------------------

    async def load(self) -> bool:
        """
        Load the active profile from the remote store.

        Returns:
            True if the result was applied, False if a reset() happened
            while loading and the result was discarded

        Raises:
            AuthError, TransportError, StorageError: nothing was changed
        """
        generation = self._generation
        profile = self._directory.get_active()
        tx_path = self._directory.resolve(TRANSACTIONS_RESOURCE)
        settings_path = self._directory.resolve(SETTINGS_RESOURCE)

        try:
            if await self._store.exists(tx_path):
                transactions = self._parse_transactions(tx_path, await self._store.read(tx_path))
                created = False
            else:
                transactions = []
                created = True

            if await self._store.exists(settings_path):
                settings = self._parse_settings(settings_path, await self._store.read(settings_path))
            else:
                settings = LedgerSettings.defaults()

            if generation != self._generation:
                self._audit_logger.record(
                    AuditEventType.STALE_LOAD_DISCARDED,
                    "Profile changed while loading; result discarded",
                    profile=profile,
                    severity=AuditSeverity.DEBUG,
                )
                return False

            # Only after both reads succeeded
            if created:
                await self._store.write(tx_path, [])

        except StorageError as e:
            self._audit_logger.log_load_failed(profile, e)
            raise

        if generation != self._generation:
            return False

        self._transactions = transactions
        self._settings = settings
        self._refresh_suggestions()

        if created:
            self._audit_logger.record(
                AuditEventType.LEDGER_INITIALIZED,
                "Created an empty transactions file",
                profile=profile,
                path=tx_path,
            )
        self._audit_logger.record(
            AuditEventType.LEDGER_LOADED,
            f"Loaded {len(transactions)} transactions",
            profile=profile,
            count=len(transactions),
        )
        return True

    def reset(self) -> None:
        """Drop local state and invalidate any load still in flight."""
        self._generation += 1
        self._transactions = []
        self._settings = LedgerSettings.defaults()
        self.suggestions = Suggestions()

    @staticmethod
    def _parse_transactions(path: str, data: Any) -> list[Transaction]:
        if data is None:
            return []
        try:
            return _TRANSACTION_LIST.validate_python(data)
        except PydanticValidationError as e:
            raise StorageError(f"{path} is malformed: {e}") from e

    @staticmethod
    def _parse_settings(path: str, data: Any) -> LedgerSettings:
        if data is None:
            return LedgerSettings.defaults()
        try:
            return LedgerSettings.model_validate(data)
        except PydanticValidationError as e:
            raise StorageError(f"{path} is malformed: {e}") from e

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add(self, transactions: list[Transaction]) -> SyncResult:
        """
        Append one transaction, or two for a split expense.

        Raises:
            ValidationError: nothing was changed or written
            AuthError: local state was changed, the session is dead
        """
        self._validator.validate_batch(transactions, (tx.id for tx in self._transactions))
        prepared = [self._validator.prepare_transaction(tx) for tx in transactions]

        self._transactions = [*self._transactions, *prepared]
        self._refresh_suggestions()

        result = await self._persist_transactions("add")
        if result.synced:
            self._audit_logger.record(
                AuditEventType.TRANSACTIONS_ADDED,
                f"Added {len(prepared)} transaction(s)",
                profile=self._directory.get_active(),
                ids=[tx.id for tx in prepared],
            )
        return result

    async def update(self, transaction: Transaction) -> SyncResult:
        """Replace the transaction with the same id (no-op if unknown)."""
        if not any(tx.id == transaction.id for tx in self._transactions):
            return SyncResult(operation="update", changed=False)

        prepared = self._validator.prepare_transaction(transaction)
        self._transactions = [
            prepared if tx.id == prepared.id else tx for tx in self._transactions
        ]
        self._refresh_suggestions()

        result = await self._persist_transactions("update")
        if result.synced:
            self._audit_logger.record(
                AuditEventType.TRANSACTION_UPDATED,
                "Transaction updated",
                profile=self._directory.get_active(),
                id=prepared.id,
            )
        return result

    async def remove(self, transaction_id: str) -> SyncResult:
        """Remove a transaction by id (no-op if unknown)."""
        remaining = [tx for tx in self._transactions if tx.id != transaction_id]
        if len(remaining) == len(self._transactions):
            return SyncResult(operation="remove", changed=False)

        self._transactions = remaining
        self._refresh_suggestions()

        result = await self._persist_transactions("remove")
        if result.synced:
            self._audit_logger.record(
                AuditEventType.TRANSACTION_DELETED,
                "Transaction deleted",
                profile=self._directory.get_active(),
                id=transaction_id,
            )
        return result

    async def save_settings(self, settings: LedgerSettings) -> SyncResult:
        """Normalize and persist the settings record."""
        self._settings = self._validator.normalize_settings(settings)

        path = self._directory.resolve(SETTINGS_RESOURCE)
        result = await self._persist("save_settings", path, self._settings.to_wire())
        if result.synced:
            self._audit_logger.record(
                AuditEventType.SETTINGS_SAVED,
                "Settings saved",
                profile=self._directory.get_active(),
                accounts=len(self._settings.common_sources),
            )
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _refresh_suggestions(self) -> None:
        self.suggestions = build_suggestions(self._transactions, self._suggestion_limit)

    async def _persist_transactions(self, operation: str) -> SyncResult:
        path = self._directory.resolve(TRANSACTIONS_RESOURCE)
        return await self._persist(operation, path, [tx.to_wire() for tx in self._transactions])

    async def _persist(self, operation: str, path: str, value: Any) -> SyncResult:
        try:
            await self._store.write(path, value)
        except AuthError:
            raise
        except StorageError as e:
            self._audit_logger.log_sync_failed(
                operation, self._directory.get_active(), path, e
            )
            return SyncResult(operation=operation, synced=False, error_message=str(e))
        return SyncResult(operation=operation)

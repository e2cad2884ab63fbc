"""
Data Models Package

This package contains all Pydantic models used in Simple Bookkeeping.
Every document read from or written to the remote store goes through these.
"""

from bookkeeping.models.ledger import (
    DEFAULT_PROFILE,
    LedgerSettings,
    LedgerStats,
    ProfileRegistry,
    Suggestions,
    SyncResult,
    Transaction,
    TransactionType,
    ValidationIssue,
)
from bookkeeping.models.audit import (
    AuditEvent,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_PROFILE",
    "LedgerSettings",
    "LedgerStats",
    "ProfileRegistry",
    "Suggestions",
    "SyncResult",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",
]

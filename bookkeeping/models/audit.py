"""
Audit Models for Simple Bookkeeping

Every remote-affecting action in the ledger core is logged as a typed event.
This provides:
1. Traceability of what was written where (profile, resource)
2. Debugging information when a sync fails
3. A record of forced logouts and their cause

DESIGN DECISION: Audit events go to the structured local log only.
Nothing here is written back to the remote store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Loading
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_INITIALIZED = "ledger_initialized"
    LEDGER_LOAD_FAILED = "ledger_load_failed"
    STALE_LOAD_DISCARDED = "stale_load_discarded"

    # Mutations
    TRANSACTIONS_ADDED = "transactions_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    SETTINGS_SAVED = "settings_saved"
    SYNC_FAILED = "sync_failed"

    # Profiles
    PROFILE_CREATED = "profile_created"
    PROFILE_RENAMED = "profile_renamed"
    PROFILE_DELETED = "profile_deleted"
    PROFILE_SWITCHED = "profile_switched"

    # Session
    SESSION_STARTED = "session_started"
    SESSION_CLEARED = "session_cleared"
    FORCED_LOGOUT = "forced_logout"
    TOKEN_REVOKE_FAILED = "token_revoke_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which ledger this is about
    profile: Optional[str] = Field(
        default=None,
        description="Active profile when the event happened"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = Field(
        default=None,
        description="Error message if this is an error event"
    )

    def to_log_dict(self) -> dict[str, Any]:
        """Flatten to a dict for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile": self.profile,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

"""
Audit Logger

DESIGN DECISION: Every remote-affecting action in the ledger core is logged.
This provides:
1. Traceability of which profile and resource were written
2. Debugging capability when a sync or load fails
3. A visible record of forced logouts
"""

from typing import Any, Optional

import structlog

from bookkeeping.models.audit import AuditEvent, AuditEventType, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Events are written to the structured local log at their severity.
    """

    def __init__(self) -> None:
        self._logger = structlog.get_logger("bookkeeping.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def record(
        self,
        event_type: AuditEventType,
        description: str,
        profile: Optional[str] = None,
        severity: AuditSeverity = AuditSeverity.INFO,
        error: Optional[BaseException] = None,
        **details: Any,
    ) -> AuditEvent:
        """Build an event, log it and hand it back."""
        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            profile=profile,
            description=description[:500],
            details=details,
            error_message=str(error) if error is not None else None,
        )
        self.log(event)
        return event

    def log_sync_failed(
        self,
        operation: str,
        profile: str,
        path: str,
        error: BaseException,
    ) -> AuditEvent:
        """A mutation was applied locally but could not be persisted."""
        return self.record(
            AuditEventType.SYNC_FAILED,
            f"{operation} applied locally but not synced",
            profile=profile,
            severity=AuditSeverity.WARNING,
            error=error,
            operation=operation,
            path=path,
            error_type=type(error).__name__,
        )

    def log_load_failed(self, profile: str, error: BaseException) -> AuditEvent:
        return self.record(
            AuditEventType.LEDGER_LOAD_FAILED,
            "Ledger load aborted; local state left unchanged",
            profile=profile,
            severity=AuditSeverity.ERROR,
            error=error,
            error_type=type(error).__name__,
        )

    def log_forced_logout(self, error: BaseException) -> AuditEvent:
        return self.record(
            AuditEventType.FORCED_LOGOUT,
            "Credential rejected by the remote store; session cleared",
            severity=AuditSeverity.ERROR,
            error=error,
        )

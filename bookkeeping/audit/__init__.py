"""Audit logging package."""

from bookkeeping.audit.logger import AuditLogger

__all__ = ["AuditLogger"]

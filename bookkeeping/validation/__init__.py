"""Write-time validation package."""

from bookkeeping.validation.validator import (
    RESERVED_PROFILE_NAMES,
    LedgerValidator,
    ValidationError,
)

__all__ = ["RESERVED_PROFILE_NAMES", "LedgerValidator", "ValidationError"]

"""
Write-Time Validation

DESIGN DECISION: Invariants are checked BEFORE a write is issued.
A ValidationError never reaches the remote store and never changes
local state.

Checks:
- Transactions: non-empty id and source; INCOME/TRANSFER need a
  destination; an EXPENSE without one gets the uncategorized label
- Batches: one entry, or two for a split expense; no duplicate ids
- Profile names: non-blank, not reserved, no path separators, unique
- Settings: normalized so opening balances only exist for known accounts

Issues are reported with a severity. Only "error" blocks a write.
"""

from typing import Iterable, Optional

from bookkeeping.config import get_settings
from bookkeeping.models.ledger import (
    DEFAULT_PROFILE,
    LedgerSettings,
    Transaction,
    TransactionType,
    ValidationIssue,
)


RESERVED_PROFILE_NAMES = frozenset({DEFAULT_PROFILE})

MAX_BATCH_SIZE = 2


class ValidationError(Exception):
    """An invariant would be violated by the requested write."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues))


def _errors(issues: list[ValidationIssue]) -> list[ValidationIssue]:
    return [issue for issue in issues if issue.severity == "error"]


class LedgerValidator:
    """Validates transactions, batches, profile names and settings."""

    def __init__(self, uncategorized_label: Optional[str] = None):
        self.uncategorized_label = uncategorized_label or get_settings().app.uncategorized_label

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def validate_transaction(self, tx: Transaction) -> list[ValidationIssue]:
        """Return every issue found; does not raise."""
        issues = []

        if not tx.id.strip():
            issues.append(ValidationIssue(
                field="id",
                issue_type="missing",
                message="Transaction id is required",
            ))

        if not tx.source.strip():
            issues.append(ValidationIssue(
                field="source",
                issue_type="missing",
                message="Source is required",
            ))

        if tx.type in (TransactionType.INCOME, TransactionType.TRANSFER):
            if not tx.destination.strip():
                issues.append(ValidationIssue(
                    field="destination",
                    issue_type="missing",
                    message=f"{tx.type.value} needs a destination account",
                ))
            elif tx.type == TransactionType.TRANSFER and tx.destination == tx.source:
                issues.append(ValidationIssue(
                    field="destination",
                    issue_type="same_account",
                    message="Transfer source and destination are the same account",
                    severity="warning",
                ))
        elif not tx.destination.strip():
            issues.append(ValidationIssue(
                field="destination",
                issue_type="uncategorized",
                message=f"Expense has no category; it will be saved as {self.uncategorized_label}",
                severity="info",
            ))

        return issues

    def prepare_transaction(self, tx: Transaction) -> Transaction:
        """
        Validate and coerce a transaction for writing.

        Raises:
            ValidationError: if any error-level issue is found
        """
        errors = _errors(self.validate_transaction(tx))
        if errors:
            raise ValidationError(errors)

        if tx.type == TransactionType.EXPENSE and not tx.destination.strip():
            return tx.model_copy(update={"destination": self.uncategorized_label})
        return tx

    def validate_batch(
        self,
        transactions: list[Transaction],
        existing_ids: Iterable[str] = (),
    ) -> None:
        """
        Check a batch for add(): size and id uniqueness.

        Raises:
            ValidationError: if the batch cannot be added
        """
        issues = []

        if not 1 <= len(transactions) <= MAX_BATCH_SIZE:
            issues.append(ValidationIssue(
                field="transactions",
                issue_type="invalid_value",
                message=f"Expected 1 or {MAX_BATCH_SIZE} transactions, got {len(transactions)}",
            ))

        taken = set(existing_ids)
        for tx in transactions:
            if tx.id in taken:
                issues.append(ValidationIssue(
                    field="id",
                    issue_type="duplicate",
                    message=f"Transaction id {tx.id} already exists",
                ))
            taken.add(tx.id)

        if issues:
            raise ValidationError(issues)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def validate_profile_name(self, name: str, existing: Iterable[str] = ()) -> str:
        """
        Validate a new profile name and return it trimmed.

        Duplicate detection is an exact, case-sensitive match.

        Raises:
            ValidationError: if the name cannot be used
        """
        cleaned = name.strip()
        issue = None

        if not cleaned:
            issue = ValidationIssue(
                field="name",
                issue_type="missing",
                message="Profile name is required",
            )
        elif cleaned in RESERVED_PROFILE_NAMES:
            issue = ValidationIssue(
                field="name",
                issue_type="reserved",
                message=f"{cleaned} is a reserved profile name",
            )
        elif "/" in cleaned or "\\" in cleaned:
            issue = ValidationIssue(
                field="name",
                issue_type="invalid_format",
                message="Profile name cannot contain path separators",
            )
        elif cleaned in existing:
            issue = ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"Profile {cleaned} already exists",
            )

        if issue:
            raise ValidationError([issue])
        return cleaned

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def normalize_settings(self, settings: LedgerSettings) -> LedgerSettings:
        """Settings as they will be written (opening balances ⊆ accounts)."""
        return settings.normalized()

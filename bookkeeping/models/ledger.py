"""
Core Data Models for Simple Bookkeeping

These models define the schemas for every document kept in the remote store:
1. The transaction collection (bookkeeping_data.json)
2. The per-profile settings record (settings.json)
3. The profile registry (profiles.json)

DESIGN DECISION: Optional and legacy fields become explicit defaults at the
deserialization boundary (missing ``type`` is EXPENSE, missing
``initialBalances`` is empty). Nothing downstream null-checks these fields.

Wire keys are camelCase (the format the existing remote files use); Python
attributes are snake_case. Unknown wire keys are kept so a read/write round
trip never drops data written by another client.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel


DEFAULT_PROFILE = "Default"

WIRE_DATE_FORMAT = "%Y/%m/%d"


def format_wire_date(value: dt.date) -> str:
    """YYYY/MM/DD, zero padded."""
    return f"{value.year:04d}/{value.month:02d}/{value.day:02d}"


def _json_number(value: Decimal) -> int | float:
    """Integral amounts go out as JSON integers, everything else as floats."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Signed money value (initial balances, computed balances)
Money = Annotated[Decimal, PlainSerializer(_json_number, when_used="json")]

# Transaction magnitude; the sign is implied by the transaction type
Amount = Annotated[Decimal, Field(ge=0), PlainSerializer(_json_number, when_used="json")]


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Kind of ledger movement.

    EXPENSE:  source account decreases, destination is a category label
    INCOME:   destination account increases, source is a category label
    TRANSFER: source account decreases, destination account increases
    """
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"
    TRANSFER = "TRANSFER"


class _WireModel(BaseModel):
    """Base for documents stored remotely (camelCase keys, extras kept)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict in the remote file format."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(_WireModel):
    """
    A single ledger entry.

    The id is assigned once at creation and never reassigned; edits produce
    a new Transaction with the same id.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Opaque unique identifier"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date, stored as YYYY/MM/DD"
    )
    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        description="Movement kind; legacy records without it are expenses"
    )
    source: str = Field(
        ...,
        min_length=1,
        description="Paying account (EXPENSE/TRANSFER) or income category (INCOME)"
    )
    destination: str = Field(
        default="",
        description="Expense category (EXPENSE) or receiving account (INCOME/TRANSFER)"
    )
    amount: Amount
    summary: str = ""
    payer: str = ""
    project_code: str = ""
    invoice_number: str = ""

    @field_validator('date', mode='before')
    @classmethod
    def parse_wire_date(cls, v: Any) -> Any:
        """Accept YYYY/MM/DD (and YYYY-MM-DD) strings."""
        if isinstance(v, str):
            text = v.strip().replace("-", "/")
            try:
                return dt.datetime.strptime(text, WIRE_DATE_FORMAT).date()
            except ValueError:
                raise ValueError(f"Invalid date {v!r}, expected YYYY/MM/DD")
        return v

    @field_validator('type', mode='before')
    @classmethod
    def default_type(cls, v: Any) -> Any:
        if v is None or v == "":
            return TransactionType.EXPENSE
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator('destination', 'summary', 'payer', 'project_code', 'invoice_number', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_serializer('date')
    def serialize_date(self, value: dt.date) -> str:
        return format_wire_date(value)

    def in_month(self, year: int, month: int) -> bool:
        """Does this transaction fall in the given calendar month?"""
        return self.date.year == year and self.date.month == month


# =============================================================================
# PER-PROFILE SETTINGS
# =============================================================================

class LedgerSettings(_WireModel):
    """
    Vocabularies and opening balances for one profile.

    INVARIANT: initial_balances keys are a subset of common_sources.
    normalized() enforces it; every save goes through normalized().
    """

    common_sources: list[str] = Field(
        default_factory=list,
        description="Accounts (the balance-tracked universe)"
    )
    common_destinations: list[str] = Field(
        default_factory=list,
        description="Expense categories"
    )
    common_income_sources: list[str] = Field(
        default_factory=list,
        description="Income categories"
    )
    common_notes: list[str] = Field(
        default_factory=list,
        description="Summary suggestions"
    )
    initial_balances: dict[str, Money] = Field(
        default_factory=dict,
        description="Account -> signed opening balance"
    )

    @field_validator(
        'common_sources', 'common_destinations', 'common_income_sources', 'common_notes',
        mode='before',
    )
    @classmethod
    def none_to_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator('initial_balances', mode='before')
    @classmethod
    def none_to_empty_dict(cls, v: Any) -> Any:
        return {} if v is None else v

    @classmethod
    def defaults(cls) -> "LedgerSettings":
        """Built-in vocabularies used when a profile has no settings file yet."""
        return cls(
            common_sources=['國泰PLAY(街口)', '現金', '中信LINE PAY', '台新GoGo', '聯邦賴點卡'],
            common_destinations=['早餐', '午餐', '晚餐', '飲料', '交通', '超市', '房租', '娛樂', '醫療', '其他'],
            common_income_sources=['薪資', '獎金', '投資', '回饋', '其他'],
            common_notes=['早餐', '午餐', '晚餐', '飲料', '交通'],
        )

    def with_account(self, name: str, initial_balance: Decimal = Decimal("0")) -> "LedgerSettings":
        """Add an account with an opening balance (no-op if it already exists)."""
        name = name.strip()
        if not name:
            raise ValueError("Account name cannot be blank")
        if name in self.common_sources:
            return self
        return self.model_copy(update={
            "common_sources": [*self.common_sources, name],
            "initial_balances": {**self.initial_balances, name: Decimal(initial_balance)},
        })

    def without_account(self, name: str) -> "LedgerSettings":
        """Remove an account and exactly its opening balance entry."""
        balances = {k: v for k, v in self.initial_balances.items() if k != name}
        return self.model_copy(update={
            "common_sources": [s for s in self.common_sources if s != name],
            "initial_balances": balances,
        })

    def with_initial_balance(self, name: str, amount: Decimal) -> "LedgerSettings":
        if name not in self.common_sources:
            raise ValueError(f"Unknown account: {name}")
        return self.model_copy(update={
            "initial_balances": {**self.initial_balances, name: Decimal(amount)},
        })

    def normalized(self) -> "LedgerSettings":
        """
        Copy with blank entries dropped, vocabularies de-duplicated
        (first occurrence wins) and stray opening balances removed.
        """
        sources = _dedupe(self.common_sources)
        return self.model_copy(update={
            "common_sources": sources,
            "common_destinations": _dedupe(self.common_destinations),
            "common_income_sources": _dedupe(self.common_income_sources),
            "common_notes": _dedupe(self.common_notes),
            "initial_balances": {
                k: v for k, v in self.initial_balances.items() if k in sources
            },
        })


def _dedupe(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


# =============================================================================
# PROFILE REGISTRY
# =============================================================================

class ProfileRegistry(BaseModel):
    """
    The store-root profiles.json document.

    Default is always implicitly present even when the stored list omits it.
    """

    profiles: list[str] = Field(default_factory=lambda: [DEFAULT_PROFILE])

    @field_validator('profiles', mode='before')
    @classmethod
    def none_to_default(cls, v: Any) -> Any:
        return [DEFAULT_PROFILE] if v is None else v

    def names(self) -> list[str]:
        """Profile names, Default first, duplicates removed."""
        ordered = [DEFAULT_PROFILE]
        for name in self.profiles:
            if name and name not in ordered:
                ordered.append(name)
        return ordered


# =============================================================================
# DERIVED / RESULT MODELS
# =============================================================================

class LedgerStats(BaseModel):
    """Balances and current-month totals derived from a transaction list."""

    balances: dict[str, Decimal] = Field(default_factory=dict)
    total_assets: Decimal = Decimal("0")
    monthly_income: Decimal = Decimal("0")
    monthly_expense: Decimal = Decimal("0")

    def balance_of(self, account: str) -> Decimal:
        return self.balances.get(account, Decimal("0"))


class Suggestions(BaseModel):
    """Distinct labels in first-seen order of the stored collection."""

    sources: list[str] = Field(default_factory=list)
    destinations: list[str] = Field(default_factory=list)


class SyncResult(BaseModel):
    """
    Outcome of persisting a mutation.

    A failed sync is non-fatal: the local change stays applied and the
    caller shows a sync warning. Compare with a failed load, which raises.
    """

    operation: str = Field(
        ...,
        description="Mutation that was persisted (add, update, remove, save_settings)"
    )
    synced: bool = Field(
        default=True,
        description="Did the remote write succeed (or was none needed)?"
    )
    changed: bool = Field(
        default=True,
        description="Did the mutation change local state?"
    )
    error_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return not self.synced


class ValidationIssue(BaseModel):
    """A single invariant violation found before a write."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )

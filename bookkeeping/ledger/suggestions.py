"""
Suggestion Index

Recently used labels offered while typing a transaction. Purely advisory:
nothing depends on these lists being complete or current.
"""

from typing import Iterable, Sequence

from bookkeeping.models.ledger import (
    LedgerSettings,
    Suggestions,
    Transaction,
    TransactionType,
)

DEFAULT_LIMIT = 10


def _first_distinct(values: Iterable[str], limit: int) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
            if len(seen) == limit:
                break
    return seen


def build_suggestions(
    transactions: Sequence[Transaction],
    limit: int = DEFAULT_LIMIT,
) -> Suggestions:
    """Distinct sources and destinations in first-seen order of the stored collection."""
    return Suggestions(
        sources=_first_distinct((tx.source for tx in transactions), limit),
        destinations=_first_distinct((tx.destination for tx in transactions), limit),
    )


def _merge(*groups: Iterable[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for value in group:
            if value and value not in merged:
                merged.append(value)
    return merged


def source_options(
    tx_type: TransactionType,
    settings: LedgerSettings,
    suggestions: Suggestions,
) -> list[str]:
    """Choices for the source field: income categories for INCOME, accounts otherwise."""
    if tx_type == TransactionType.INCOME:
        return list(settings.common_income_sources)
    return _merge(settings.common_sources, suggestions.sources)


def destination_options(
    tx_type: TransactionType,
    settings: LedgerSettings,
    suggestions: Suggestions,
) -> list[str]:
    """Choices for the destination field: categories for EXPENSE, accounts otherwise."""
    if tx_type == TransactionType.EXPENSE:
        return _merge(settings.common_destinations, suggestions.destinations)
    return list(settings.common_sources)

"""
Ledger Package

Profile lifecycle, the active ledger's state, and the pure functions
derived from it (balances, suggestions, export).
"""

from bookkeeping.ledger.authoring import (
    edit_transaction,
    new_expense,
    new_income,
    new_transfer,
    split_amount,
    split_expense,
)
from bookkeeping.ledger.export import export_csv, export_filename
from bookkeeping.ledger.profiles import ProfileDirectory, profile_root
from bookkeeping.ledger.stats import compute_stats
from bookkeeping.ledger.store import LedgerStore
from bookkeeping.ledger.suggestions import (
    build_suggestions,
    destination_options,
    source_options,
)

__all__ = [
    # Authoring
    "edit_transaction",
    "new_expense",
    "new_income",
    "new_transfer",
    "split_amount",
    "split_expense",
    # Export
    "export_csv",
    "export_filename",
    # Profiles
    "ProfileDirectory",
    "profile_root",
    # Store
    "LedgerStore",
    # Derived views
    "build_suggestions",
    "compute_stats",
    "destination_options",
    "source_options",
]

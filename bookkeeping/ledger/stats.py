"""
Balance Engine

Pure computation of account balances and current-month totals.
No I/O, no shared state: safe to call on every render.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from bookkeeping.models.ledger import LedgerStats, Transaction, TransactionType


def compute_stats(
    transactions: Iterable[Transaction],
    accounts: Iterable[str],
    initial_balances: Optional[Mapping[str, Decimal]] = None,
    today: Optional[date] = None,
) -> LedgerStats:
    """
    Derive balances and monthly totals.

    - Every account starts at its initial balance (0 if none)
    - EXPENSE: source decreases
    - INCOME: destination increases
    - TRANSFER: source decreases, destination increases
    - Accounts referenced by a transaction but missing from `accounts`
      are still tracked, so totals survive a stale vocabulary
    - Monthly totals count transactions dated in the month of `today`
      (evaluation time); transfers never count

    Args:
        transactions: Ledger entries, in any order
        accounts: Known account names
        initial_balances: Account -> opening balance
        today: Evaluation date (defaults to the current date)
    """
    initial_balances = initial_balances or {}
    today = today or date.today()

    balances: dict[str, Decimal] = {}
    for account in accounts:
        balances[account] = Decimal(initial_balances.get(account, 0))

    monthly_income = Decimal("0")
    monthly_expense = Decimal("0")

    def shift(account: str, delta: Decimal) -> None:
        if account:
            balances[account] = balances.get(account, Decimal("0")) + delta

    for tx in transactions:
        this_month = tx.in_month(today.year, today.month)

        if tx.type == TransactionType.EXPENSE:
            shift(tx.source, -tx.amount)
            if this_month:
                monthly_expense += tx.amount
        elif tx.type == TransactionType.INCOME:
            shift(tx.destination, tx.amount)
            if this_month:
                monthly_income += tx.amount
        elif tx.type == TransactionType.TRANSFER:
            shift(tx.source, -tx.amount)
            shift(tx.destination, tx.amount)

    return LedgerStats(
        balances=balances,
        total_assets=sum(balances.values(), Decimal("0")),
        monthly_income=monthly_income,
        monthly_expense=monthly_expense,
    )

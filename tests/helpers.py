"""Shared test doubles and builders."""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from bookkeeping.models import Transaction, TransactionType
from bookkeeping.services.storage import InMemoryBlobStore


UNCATEGORIZED = "未分類"


class FlakyBlobStore(InMemoryBlobStore):
    """
    In-memory store that can be told to fail.

    `failures` maps an operation name ("exists", "read", "write", "move",
    "delete") to the exception it raises. Every call is recorded in `calls`.
    """

    def __init__(self, files: Optional[dict[str, Any]] = None):
        super().__init__(files)
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    def _check(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        if operation in self.failures:
            raise self.failures[operation]

    def writes(self) -> list[str]:
        return [path for operation, path in self.calls if operation == "write"]

    async def exists(self, path: str) -> bool:
        self._check("exists", path)
        return await super().exists(path)

    async def read(self, path: str) -> Optional[Any]:
        self._check("read", path)
        return await super().read(path)

    async def write(self, path: str, value: Any) -> None:
        self._check("write", path)
        await super().write(path, value)

    async def move(self, old_path: str, new_path: str) -> None:
        self._check("move", old_path)
        await super().move(old_path, new_path)

    async def delete(self, path: str) -> None:
        self._check("delete", path)
        await super().delete(path)


def make_tx(
    source: str = "現金",
    destination: str = "午餐",
    amount: str = "100",
    tx_type: TransactionType = TransactionType.EXPENSE,
    tx_date: date = date(2024, 5, 1),
    **extra: Any,
) -> Transaction:
    """Shorthand for building a transaction in tests."""
    return Transaction(
        date=tx_date,
        type=tx_type,
        source=source,
        destination=destination,
        amount=Decimal(amount),
        **extra,
    )

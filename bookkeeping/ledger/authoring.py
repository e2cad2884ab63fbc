"""
Transaction Authoring

Builders for the entries a form produces. Every builder returns a
transaction that has already been through the validator, so what the
caller holds is exactly what add() will store.

Split expense: one paid amount shared by two categories becomes two
independent EXPENSE transactions. Nothing links them once created.
"""

from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from bookkeeping.models.ledger import Transaction, TransactionType, ValidationIssue
from bookkeeping.validation import LedgerValidator, ValidationError


def _build(validator: Optional[LedgerValidator], **fields: Any) -> Transaction:
    validator = validator or LedgerValidator()
    try:
        tx = Transaction(**fields)
    except PydanticValidationError as e:
        raise ValidationError([
            ValidationIssue(
                field=".".join(str(part) for part in err["loc"]) or "transaction",
                issue_type="invalid_value",
                message=err["msg"],
            )
            for err in e.errors()
        ]) from e
    return validator.prepare_transaction(tx)


def new_expense(
    tx_date: date,
    source: str,
    amount: Decimal,
    destination: str = "",
    validator: Optional[LedgerValidator] = None,
    **details: Any,
) -> Transaction:
    """An expense paid from `source`; a blank category becomes the uncategorized label."""
    return _build(
        validator,
        date=tx_date,
        type=TransactionType.EXPENSE,
        source=source,
        destination=destination,
        amount=amount,
        **details,
    )


def new_income(
    tx_date: date,
    source: str,
    destination: str,
    amount: Decimal,
    validator: Optional[LedgerValidator] = None,
    **details: Any,
) -> Transaction:
    """Income of category `source` received into account `destination`."""
    return _build(
        validator,
        date=tx_date,
        type=TransactionType.INCOME,
        source=source,
        destination=destination,
        amount=amount,
        **details,
    )


def new_transfer(
    tx_date: date,
    source: str,
    destination: str,
    amount: Decimal,
    validator: Optional[LedgerValidator] = None,
    **details: Any,
) -> Transaction:
    return _build(
        validator,
        date=tx_date,
        type=TransactionType.TRANSFER,
        source=source,
        destination=destination,
        amount=amount,
        **details,
    )


def split_amount(
    total: Decimal,
    first: Optional[Decimal] = None,
    second: Optional[Decimal] = None,
) -> tuple[Decimal, Decimal]:
    """
    Divide a total between two parts.

    - Neither given: floor of half, then the remainder (101 -> 50, 51)
    - One given: the other is the remainder
    - Both given: they must add up to the total

    Raises:
        ValidationError: a part is negative or the parts do not add up
    """
    total = Decimal(total)

    if first is None and second is None:
        first = (total / 2).to_integral_value(rounding=ROUND_FLOOR)
        second = total - first
    elif second is None:
        first = Decimal(first)
        second = total - first
    elif first is None:
        second = Decimal(second)
        first = total - second
    else:
        first, second = Decimal(first), Decimal(second)
        if first + second != total:
            raise ValidationError([ValidationIssue(
                field="amount",
                issue_type="mismatch",
                message=f"Split amounts {first} + {second} do not add up to {total}",
            )])

    if first < 0 or second < 0:
        raise ValidationError([ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message=f"Split amounts cannot be negative ({first}, {second})",
        )])

    return first, second


def split_expense(
    tx_date: date,
    source: str,
    amount: Decimal,
    destinations: tuple[str, str],
    amounts: tuple[Optional[Decimal], Optional[Decimal]] = (None, None),
    summary: str = "",
    payer: str = "",
    validator: Optional[LedgerValidator] = None,
) -> list[Transaction]:
    """
    Two EXPENSE transactions sharing date, source, summary and payer.

    Raises:
        ValidationError: destinations not distinct, or amounts invalid
    """
    first_dest, second_dest = (d.strip() for d in destinations)
    if not first_dest or not second_dest or first_dest == second_dest:
        raise ValidationError([ValidationIssue(
            field="destination",
            issue_type="invalid_value",
            message="A split expense needs two different categories",
        )])

    first_amount, second_amount = split_amount(amount, *amounts)

    return [
        new_expense(
            tx_date, source, part_amount,
            destination=part_dest, summary=summary, payer=payer, validator=validator,
        )
        for part_dest, part_amount in ((first_dest, first_amount), (second_dest, second_amount))
    ]


def edit_transaction(
    existing: Transaction,
    validator: Optional[LedgerValidator] = None,
    **changes: Any,
) -> Transaction:
    """
    A revalidated copy of `existing` with `changes` applied.

    The id cannot be changed.
    """
    if "id" in changes and changes["id"] != existing.id:
        raise ValidationError([ValidationIssue(
            field="id",
            issue_type="immutable",
            message="Transaction id cannot be changed",
        )])

    data = existing.model_dump()
    data.update(changes)
    data["id"] = existing.id
    return _build(validator, **data)

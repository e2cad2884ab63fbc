"""
CSV Export

Spreadsheet-friendly dump of a ledger. The file starts with a UTF-8 byte
order mark so spreadsheet tools detect the encoding of the Chinese
headers and labels.
"""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from bookkeeping.models.ledger import Transaction, format_wire_date


CSV_HEADERS = [
    "記錄日期",
    "來源項目",
    "目的帳目",
    "異動金額",
    "摘要",
    "收付人",
    "專案代號",
    "發票號碼",
]

BOM = "\ufeff"


def _format_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(amount.normalize())


def _parse_month(month: str) -> tuple[int, int]:
    try:
        year_text, month_text = month.split("-")
        year, month_number = int(year_text), int(month_text)
    except ValueError:
        raise ValueError(f"Invalid month {month!r}, expected YYYY-MM")
    if not 1 <= month_number <= 12:
        raise ValueError(f"Invalid month {month!r}, expected YYYY-MM")
    return year, month_number


def export_csv(transactions: Iterable[Transaction], month: Optional[str] = None) -> bytes:
    """
    Render transactions as CSV bytes.

    Args:
        transactions: Rows, written in the given order
        month: Optional "YYYY-MM"; only transactions in that month are kept
    """
    rows = list(transactions)
    if month:
        year, month_number = _parse_month(month)
        rows = [tx for tx in rows if tx.in_month(year, month_number)]

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for tx in rows:
        writer.writerow([
            format_wire_date(tx.date),
            tx.source,
            tx.destination,
            _format_amount(tx.amount),
            tx.summary,
            tx.payer,
            tx.project_code,
            tx.invoice_number,
        ])

    return (BOM + buffer.getvalue()).encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    """Download name, e.g. 記帳資料_2024-05-01.csv"""
    today = today or date.today()
    return f"記帳資料_{today.isoformat()}.csv"

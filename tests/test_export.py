"""Tests for CSV export."""

import csv
import io
from datetime import date

import pytest

from bookkeeping.ledger import export_csv, export_filename
from bookkeeping.ledger.export import CSV_HEADERS

from tests.helpers import make_tx


def _rows(content: bytes) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))


class TestExportCsv:
    """Spreadsheet export."""

    def test_starts_with_bom(self):
        assert export_csv([]).startswith(b"\xef\xbb\xbf")

    def test_headers(self):
        assert _rows(export_csv([]))[0] == CSV_HEADERS
        assert CSV_HEADERS[0] == "記錄日期"

    def test_one_row_per_transaction(self):
        transactions = [
            make_tx(source="現金", destination="午餐", amount="120", summary="便當",
                    payer="小明", project_code="P1", invoice_number="AB12345678"),
            make_tx(source="信用卡", destination="交通", amount="35.5", tx_date=date(2024, 5, 2)),
        ]
        rows = _rows(export_csv(transactions))
        assert rows[1] == ["2024/05/01", "現金", "午餐", "120", "便當", "小明", "P1", "AB12345678"]
        assert rows[2] == ["2024/05/02", "信用卡", "交通", "35.5", "", "", "", ""]
        assert len(rows) == 3

    def test_month_filter(self):
        transactions = [
            make_tx(amount="1", tx_date=date(2024, 4, 30)),
            make_tx(amount="2", tx_date=date(2024, 5, 1)),
        ]
        rows = _rows(export_csv(transactions, month="2024-05"))
        assert [row[3] for row in rows[1:]] == ["2"]

    @pytest.mark.parametrize("month", ["2024-13", "May", "2024/05"])
    def test_invalid_month(self, month):
        with pytest.raises(ValueError, match="YYYY-MM"):
            export_csv([], month=month)

    def test_commas_are_quoted(self):
        rows = _rows(export_csv([make_tx(summary="a, b")]))
        assert rows[1][4] == "a, b"


def test_export_filename():
    assert export_filename(date(2024, 5, 1)) == "記帳資料_2024-05-01.csv"

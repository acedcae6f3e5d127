import os

import pandas as pd
import pytest

from schemas import SaleReceipt
from utils import (archive_receipt, expense_distribution, export_report, export_reports,
                   load_transactions, monthly_sales, profit_and_loss, shift_sales_frame,
                   shift_summary, transactions_report)


def archive_config(tmp_path, kind):
    return {
        'receipt': {'receipt_dir': str(tmp_path / "receipts"), 'archive': kind},
        'printer': {'line_width': 32, 'currency': "Rs."},
    }


class TestArchive:
    def test_disabled_by_default(self, sale, tmp_path):
        assert archive_receipt(sale, {}) is None
        assert archive_receipt(sale, archive_config(tmp_path, "none")) is None

    def test_text_copy(self, sale, tmp_path):
        path = archive_receipt(sale, archive_config(tmp_path, "txt"))
        assert os.path.basename(path) == "receipt_INV-1001.txt"
        with open(path, encoding="utf-8") as f:
            text = f.read()
        assert "Corner Store" in text
        assert "Rs.360.00" in text

    def test_pdf_copy(self, sale, tmp_path):
        path = archive_receipt(sale, archive_config(tmp_path, "pdf"))
        assert path.endswith("receipt_INV-1001.pdf")
        with open(path, "rb") as f:
            assert f.read(5) == b"%PDF-"

    def test_unsafe_invoice_characters(self, receipt_data, tmp_path):
        receipt_data["invoiceNumber"] = "INV/2024 07"
        sale = SaleReceipt.model_validate(receipt_data)
        path = archive_receipt(sale, archive_config(tmp_path, "txt"))
        assert os.path.basename(path) == "receipt_INV_2024_07.txt"


class TestShiftSummary:
    def test_empty_shift(self):
        summary = shift_summary([])
        assert summary['num_sales'] == 0
        assert summary['best_selling_item'] is None

    def test_totals(self, receipt_data):
        upi = dict(receipt_data, invoiceNumber="INV-1002", paymentMode="UPI", grandTotal=100,
                   items=[{"name": "Socks", "quantity": 4, "rate": 25, "total": 100}])
        receipts = [SaleReceipt.model_validate(receipt_data), SaleReceipt.model_validate(upi)]

        summary = shift_summary(receipts)
        assert summary['num_sales'] == 2
        assert summary['total_sales'] == 460.0
        assert summary['average_sale'] == 230.0
        assert summary['by_payment_mode'] == {'Cash': 360.0, 'UPI': 100.0}
        assert summary['best_selling_item'] == "Socks"


def test_monthly_sales_in_calendar_order():
    orders = [
        {'date': "2024-03-02", 'amount': 100},
        {'date': "2024-01-15", 'amount': "250.5"},
        {'date': "2024-03-20", 'amount': 50},
        {'date': "2024-01-01", 'amount': None},
    ]
    df = monthly_sales(orders)
    assert list(df['month']) == ["Jan", "Mar"]
    assert list(df['total']) == [250.5, 150.0]


def test_monthly_sales_empty():
    assert monthly_sales([]).empty


def test_expense_distribution():
    df = expense_distribution([
        {'category': "Rent", 'amount': 3000},
        {'category': "Salary", 'amount': 1000},
        {'category': "Rent", 'amount': 1000},
    ])
    assert list(df['category']) == ["Rent", "Salary"]
    assert list(df['total']) == [4000.0, 1000.0]
    assert list(df['share']) == [80.0, 20.0]


def test_profit_and_loss():
    df = profit_and_loss(["Jan", "Feb"], [1000, 0], [600, 200])
    assert list(df['profit']) == [400.0, -200.0]
    assert list(df['margin']) == [40.0, 0.0]


def test_profit_and_loss_length_mismatch():
    with pytest.raises(ValueError):
        profit_and_loss(["Jan"], [1, 2], [1])


@pytest.mark.parametrize("fmt,name", [("csv", "report.csv"), ("excel", "report.xlsx")])
def test_export_report(tmp_path, fmt, name):
    df = pd.DataFrame({'month': ["Jan"], 'total': [10.0]})
    path = export_report(df, str(tmp_path / "out" / name), format=fmt)
    assert os.path.exists(path)
    if fmt == "csv":
        assert pd.read_csv(path).equals(df)


def test_shift_sales_frame(sale):
    df = shift_sales_frame([sale])
    row = df.iloc[0]
    assert row['invoice'] == "INV-1001"
    assert row['items'] == 3
    assert row['discount'] == 90.0
    assert row['total'] == 360.0


def test_shift_sales_frame_empty_keeps_columns():
    df = shift_sales_frame([])
    assert df.empty
    assert 'total' in df.columns


def test_amounts_with_thousands_separator():
    df = monthly_sales([{'date': "2025-11-13", 'amount': "2,000.00"},
                        {'date': "2025-11-20", 'amount': "1,250.50"}])
    assert list(df['total']) == [3250.5]

    df = expense_distribution([{'category': "Rent", 'amount': "1,500.00"},
                               {'category': "Power", 'amount': "500"}])
    assert list(df['total']) == [1500.0, 500.0]
    assert list(df['share']) == [75.0, 25.0]


def test_unreadable_amount_counts_as_zero_and_is_logged(caplog):
    with caplog.at_level("WARNING", logger="POS_Billing.Reports"):
        df = monthly_sales([{'date': "2025-11-13", 'amount': "two thousand"},
                            {'date': "2025-11-14", 'amount': "100"}])
    assert list(df['total']) == [100.0]
    assert "two thousand" in caplog.text


LEDGER = [
    {'date': "2025-10-02", 'description': "Counter sales", 'amount': "12,000.00", 'type': "income"},
    {'date': "2025-10-05", 'description': "Rent", 'amount': "3,000.00", 'type': "expense"},
    {'date': "2025-11-01", 'description': "Counter sales", 'amount': "8,000.00", 'type': "Income"},
    {'date': "2025-11-03", 'description': "Rent", 'amount': "3,000.00", 'type': "expense"},
    {'date': "2025-11-10", 'description': "Salary", 'amount': "2,000.00", 'type': "expense"},
]


class TestTransactionsReport:
    def test_profit_and_loss_per_month(self):
        pnl = transactions_report(LEDGER)['profit_and_loss']
        assert list(pnl['month']) == ["Oct", "Nov"]
        assert list(pnl['revenue']) == [12000.0, 8000.0]
        assert list(pnl['expenses']) == [3000.0, 5000.0]
        assert list(pnl['profit']) == [9000.0, 3000.0]
        assert list(pnl['margin']) == [75.0, 37.5]

    def test_income_and_expense_frames(self):
        reports = transactions_report(LEDGER)
        assert list(reports['monthly_income']['total']) == [12000.0, 8000.0]
        dist = reports['expense_distribution']
        assert list(dist['category']) == ["Rent", "Salary"]
        assert list(dist['total']) == [6000.0, 2000.0]

    def test_month_with_only_expenses(self):
        pnl = transactions_report(LEDGER[1:2])['profit_and_loss']
        assert list(pnl['revenue']) == [0.0]
        assert list(pnl['margin']) == [0.0]


def test_load_transactions_csv(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text('Date,Description,Amount,Type,Status\n'
                    '2025-11-13,Counter sales,"2,000.00",income,done\n', encoding="utf-8")
    rows = load_transactions(str(path))
    assert rows == [{'date': "2025-11-13", 'description': "Counter sales",
                     'amount': "2,000.00", 'type': "income"}]


def test_load_transactions_missing_column(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text("date,amount\n2025-11-13,10\n", encoding="utf-8")
    with pytest.raises(ValueError, match="description"):
        load_transactions(str(path))


def test_export_reports(tmp_path):
    paths = export_reports(transactions_report(LEDGER), str(tmp_path))
    names = sorted(os.path.basename(p).split("_2")[0] for p in paths)
    assert names == ["expense_distribution", "monthly_income", "profit_and_loss"]
    assert all(p.endswith(".csv") and os.path.exists(p) for p in paths)

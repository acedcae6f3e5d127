# utils.py
import os
import datetime
import logging

import pandas as pd
from reportlab.lib.pagesizes import A6
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch

from receipt import receipt_text

MONTHS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
          'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

logger = logging.getLogger("POS_Billing.Reports")


# Receipt archive

def _safe_name(invoice_number: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in invoice_number)


def generate_txt_receipt(sale, file_path: str, line_width=32, currency="Rs."):
    """Write the receipt exactly as it is laid out on paper."""
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(receipt_text(sale, line_width, currency))
    return file_path


def generate_pdf_receipt(sale, file_path: str, currency="Rs."):
    """Generate a PDF copy of a receipt using ReportLab."""
    doc = SimpleDocTemplate(file_path, pagesize=A6,
                            leftMargin=0.3 * inch, rightMargin=0.3 * inch,
                            topMargin=0.3 * inch, bottomMargin=0.3 * inch)
    elements = []

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='Centered',
        parent=styles['Normal'],
        alignment=1,
    ))

    # Shop header
    elements.append(Paragraph(sale.shop.name or "Receipt", styles['Heading2']))
    for line in (sale.shop.address, f"Ph: {sale.shop.phone}" if sale.shop.phone else ""):
        if line:
            elements.append(Paragraph(line, styles['Normal']))
    elements.append(Spacer(1, 0.1 * inch))

    when = sale.created_at or datetime.datetime.now()
    elements.append(Paragraph(f"Invoice: {sale.invoice_number}", styles['Normal']))
    elements.append(Paragraph(f"Date: {when.strftime('%d-%m-%Y %H:%M')}", styles['Normal']))
    elements.append(Spacer(1, 0.1 * inch))

    data = [["Item", "Qty", "Rate", "Amount"]]
    for item in sale.items:
        data.append([item.name, str(item.quantity), f"{item.rate:.2f}", f"{item.total:.2f}"])

    # Summary rows
    data.append(["Subtotal:", "", "", f"{currency}{sale.subtotal:.2f}"])
    data.append(["Discount (%):", "", "", f"-{currency}{sale.percent_discount_amount:.2f}"])
    data.append(["Flat discount:", "", "", f"-{currency}{sale.flat_discount_amount:.2f}"])
    data.append(["Total:", "", "", f"{currency}{sale.grand_total:.2f}"])
    data.append(["Paid by:", sale.payment_mode, "", ""])

    table = Table(data, colWidths=[1.5 * inch, 0.4 * inch, 0.7 * inch, 0.9 * inch])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (3, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (3, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (3, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, len(sale.items)), 0.5, colors.black),
        ('ALIGN', (1, 1), (3, -1), 'RIGHT'),
        ('FONTNAME', (0, -2), (3, -2), 'Helvetica-Bold'),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 0.2 * inch))
    elements.append(Paragraph("Thank you for shopping with us!", styles['Centered']))

    doc.build(elements)
    return file_path


def archive_receipt(sale, config: dict):
    """
    Save a copy of a completed sale's receipt when archiving is enabled.
    Returns the file path, or None when archiving is off.
    """
    receipt_cfg = config.get('receipt', {})
    kind = receipt_cfg.get('archive', 'none')
    if kind not in ('txt', 'pdf'):
        return None
    receipt_dir = receipt_cfg.get('receipt_dir', 'receipts')
    os.makedirs(receipt_dir, exist_ok=True)

    printer_cfg = config.get('printer', {})
    currency = printer_cfg.get('currency', 'Rs.')
    path = os.path.join(receipt_dir, f"receipt_{_safe_name(sale.invoice_number)}.{kind}")
    if kind == 'pdf':
        return generate_pdf_receipt(sale, path, currency=currency)
    return generate_txt_receipt(sale, path, int(printer_cfg.get('line_width', 32)), currency)


# Shift summary and ERP reports

def _amounts(column):
    """
    Amount column to floats. Thousands separators ("2,000.00") are
    accepted; anything else unreadable counts as 0 and is logged.
    """
    text = column.astype(str).str.replace(",", "", regex=False).str.strip()
    values = pd.to_numeric(text, errors='coerce')
    bad = values.isna() & column.notna()
    if bad.any():
        logger.warning(f"{int(bad.sum())} unreadable amount(s) counted as 0: {list(column[bad])[:5]}")
    return values.fillna(0)


def shift_summary(receipts):
    """Totals for the sales completed at this counter since it was opened."""
    if not receipts:
        return {
            'num_sales': 0,
            'total_sales': 0.0,
            'average_sale': 0.0,
            'by_payment_mode': {},
            'best_selling_item': None,
        }

    sales = pd.DataFrame([{
        'invoice': r.invoice_number,
        'payment_mode': r.payment_mode,
        'total': float(r.grand_total),
    } for r in receipts])

    items = pd.DataFrame([{
        'name': item.name,
        'quantity': item.quantity,
    } for r in receipts for item in r.items])

    best = None
    if not items.empty:
        best = items.groupby('name')['quantity'].sum().idxmax()

    by_mode = sales.groupby('payment_mode')['total'].sum().round(2)
    return {
        'num_sales': len(sales),
        'total_sales': round(float(sales['total'].sum()), 2),
        'average_sale': round(float(sales['total'].mean()), 2),
        'by_payment_mode': {k: float(v) for k, v in by_mode.items()},
        'best_selling_item': best,
    }


def _monthly_totals(df):
    """Sum of `amount` per calendar month, indexed by monthly Period."""
    dates = pd.to_datetime(df['date'])
    amounts = _amounts(df['amount'])
    return amounts.groupby(dates.dt.to_period('M')).sum().sort_index()


def shift_sales_frame(receipts):
    """One row per completed sale, for exporting the shift."""
    return pd.DataFrame([{
        'invoice': r.invoice_number,
        'date': r.created_at,
        'payment_mode': r.payment_mode,
        'items': sum(item.quantity for item in r.items),
        'subtotal': float(r.subtotal),
        'discount': float(r.percent_discount_amount + r.flat_discount_amount),
        'total': float(r.grand_total),
    } for r in receipts], columns=['invoice', 'date', 'payment_mode', 'items',
                                   'subtotal', 'discount', 'total'])


def monthly_sales(orders):
    """
    Order records with `date` and `amount` to per-month totals,
    in calendar order.
    """
    df = pd.DataFrame(orders, columns=['date', 'amount'])
    if df.empty:
        return pd.DataFrame(columns=['month', 'total'])
    totals = _monthly_totals(df)
    return pd.DataFrame({
        'month': [MONTHS[p.month - 1] for p in totals.index],
        'total': totals.round(2).values,
    })


def expense_distribution(expenses):
    """Expenses with `category` and `amount` to totals and percent share."""
    df = pd.DataFrame(expenses, columns=['category', 'amount'])
    if df.empty:
        return pd.DataFrame(columns=['category', 'total', 'share'])
    df['amount'] = _amounts(df['amount'])

    totals = df.groupby('category', sort=False)['amount'].sum()
    grand = totals.sum()
    share = (totals / grand * 100).round(1) if grand else totals * 0
    return pd.DataFrame({
        'category': list(totals.index),
        'total': totals.round(2).values,
        'share': share.values,
    })


def profit_and_loss(months, revenue, expenses):
    """Per-month revenue, expenses, profit and margin (percent, 1 decimal)."""
    if not (len(months) == len(revenue) == len(expenses)):
        raise ValueError("months, revenue and expenses must have the same length")
    df = pd.DataFrame({
        'month': list(months),
        'revenue': pd.Series(revenue, dtype='float64'),
        'expenses': pd.Series(expenses, dtype='float64'),
    })
    df['profit'] = df['revenue'] - df['expenses']
    margin = (df['profit'] / df['revenue'].where(df['revenue'] != 0) * 100).round(1)
    df['margin'] = margin.fillna(0.0)
    return df


def export_report(df, file_path: str, format='csv'):
    """Write a report DataFrame to CSV (default) or Excel."""
    directory = os.path.dirname(file_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if format.lower() == 'excel':
        df.to_excel(file_path, index=False, sheet_name='Report')
    else:
        df.to_csv(file_path, index=False)
    return file_path


# Transactions ledger (date, description, amount, type: income | expense)

TRANSACTION_COLUMNS = ['date', 'description', 'amount', 'type']


def load_transactions(file_path: str):
    """Read a transactions ledger exported as CSV or Excel."""
    if file_path.lower().endswith(('.xlsx', '.xls')):
        df = pd.read_excel(file_path, dtype={'amount': str})
    else:
        df = pd.read_csv(file_path, dtype={'amount': str})
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in TRANSACTION_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{os.path.basename(file_path)} is missing column(s): {', '.join(missing)}")
    return df[TRANSACTION_COLUMNS].to_dict('records')


def transactions_report(transactions):
    """
    Shape a transactions ledger into the ERP reports: monthly income,
    expense distribution by description, and profit and loss per month.
    """
    df = pd.DataFrame(transactions, columns=TRANSACTION_COLUMNS)
    kind = df['type'].fillna('').astype(str).str.strip().str.lower()
    income = df[kind == 'income']
    expense = df[kind == 'expense']

    revenue = _monthly_totals(income) if not income.empty else pd.Series(dtype='float64')
    spent = _monthly_totals(expense) if not expense.empty else pd.Series(dtype='float64')
    periods = sorted(set(revenue.index) | set(spent.index))

    return {
        'monthly_income': monthly_sales(income[['date', 'amount']].to_dict('records')),
        'expense_distribution': expense_distribution(
            expense.rename(columns={'description': 'category'})[['category', 'amount']]
            .to_dict('records')),
        'profit_and_loss': profit_and_loss(
            [MONTHS[p.month - 1] for p in periods],
            [float(revenue.get(p, 0)) for p in periods],
            [float(spent.get(p, 0)) for p in periods]),
    }


def export_reports(reports: dict, directory: str, format='csv'):
    """Write each named report frame into `directory`; returns the paths."""
    ext = 'xlsx' if format.lower() == 'excel' else 'csv'
    stamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    return [export_report(df, os.path.join(directory, f"{name}_{stamp}.{ext}"), format)
            for name, df in reports.items()]

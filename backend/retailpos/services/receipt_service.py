"""
Receipt rendering.

Receipts are written to RECEIPTS_DIR as receipt_<transaction_id>.<fmt>
and served back to the mobile client under /receipts/.
"""
from __future__ import annotations

import os
from decimal import Decimal, ROUND_HALF_UP
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..models import Sale
from .settings_service import get_values

RECEIPT_FORMATS = ("pdf", "txt")
WIDTH = 50
CENTS = Decimal("0.01")


class ReceiptError(Exception):
    pass


def _money(symbol: str, amount) -> str:
    value = Decimal(str(amount or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)
    return f"{symbol}{value}"


def _tax_label(sale: Sale) -> str:
    pct = (Decimal(str(sale.tax_rate)) * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"Tax ({pct}%):"


def _cashier(sale: Sale) -> str:
    if sale.user is None:
        return ""
    return sale.user.full_name or sale.user.username


def _receipt_date(sale: Sale) -> str:
    return sale.created_at.strftime("%Y-%m-%d %H:%M:%S") if sale.created_at else ""


def render_text(sale: Sale, settings: dict) -> str:
    symbol = settings.get("currency_symbol") or "$"
    header = settings.get("receipt_header") or "Retail Store"
    footer = settings.get("receipt_footer") or "Thank you for your business!"

    def right(label: str, value: str) -> str:
        return label + value.rjust(WIDTH - len(label))

    lines = [
        "=" * WIDTH,
        header.upper().center(WIDTH).rstrip(),
        "RECEIPT".center(WIDTH).rstrip(),
        "=" * WIDTH,
        "",
        f"Transaction ID: {sale.transaction_id}",
        f"Date: {_receipt_date(sale)}",
        f"Cashier: {_cashier(sale)}",
    ]
    if sale.payment_method:
        lines.append(f"Payment: {sale.payment_method}")

    lines += ["", "-" * WIDTH, "ITEMS", "-" * WIDTH]
    for item in sale.items:
        lines.append(item.product_name)
        lines.append(right(f"  {item.quantity} x {_money(symbol, item.unit_price)}", _money(symbol, item.subtotal)))

    lines += ["", "-" * WIDTH, right("Subtotal:", _money(symbol, sale.subtotal))]
    if sale.discount_amount and sale.discount_amount > 0:
        lines.append(right("Discount:", "-" + _money(symbol, sale.discount_amount)))
    lines.append(right(_tax_label(sale), _money(symbol, sale.tax_amount)))
    lines += [
        "=" * WIDTH,
        right("TOTAL:", _money(symbol, sale.total)),
        "=" * WIDTH,
        "",
        footer.center(WIDTH).rstrip(),
        "=" * WIDTH,
    ]
    if sale.status == "refunded":
        lines.insert(5, "*** REFUNDED ***".center(WIDTH).rstrip())
    return "\n".join(lines) + "\n"


def render_pdf(sale: Sale, settings: dict, path: str) -> None:
    symbol = settings.get("currency_symbol") or "$"
    header = settings.get("receipt_header") or "Retail Store"
    footer = settings.get("receipt_footer") or "Thank you for your business!"

    doc = SimpleDocTemplate(path, pagesize=A4)
    styles = getSampleStyleSheet()
    elements = []

    elements.append(Paragraph(escape(header), styles["Title"]))
    elements.append(Paragraph("Receipt", styles["Normal"]))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"Transaction ID: {escape(sale.transaction_id)}", styles["Normal"]))
    elements.append(Paragraph(f"Date: {_receipt_date(sale)}", styles["Normal"]))
    elements.append(Paragraph(f"Cashier: {escape(_cashier(sale))}", styles["Normal"]))
    if sale.payment_method:
        elements.append(Paragraph(f"Payment Method: {escape(sale.payment_method)}", styles["Normal"]))
    if sale.status == "refunded":
        elements.append(Paragraph("REFUNDED", styles["Heading2"]))
    elements.append(Spacer(1, 12))

    data = [["Item", "Qty", "Price", "Total"]]
    for item in sale.items:
        data.append([
            item.product_name,
            str(item.quantity),
            _money(symbol, item.unit_price),
            _money(symbol, item.subtotal),
        ])

    data.append(["", "", "Subtotal:", _money(symbol, sale.subtotal)])
    if sale.discount_amount and sale.discount_amount > 0:
        data.append(["", "", "Discount:", "-" + _money(symbol, sale.discount_amount)])
    data.append(["", "", _tax_label(sale), _money(symbol, sale.tax_amount)])
    data.append(["", "", "Total:", _money(symbol, sale.total)])

    item_rows = len(sale.items)
    table = Table(data, repeatRows=1, colWidths=[220, 50, 100, 100])
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.grey),
        ("LINEBELOW", (0, item_rows), (-1, item_rows), 0.5, colors.grey),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("FONTNAME", (2, -1), (-1, -1), "Helvetica-Bold"),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 24))
    elements.append(Paragraph(escape(footer), styles["Normal"]))

    doc.build(elements)


def generate_receipt(sale: Sale, fmt: str = "pdf") -> dict:
    """
    Render a receipt file for the sale.

    Returns the filesystem path and the /receipts/ url. Regenerating a
    receipt overwrites the previous file (e.g. after a refund).
    """
    fmt = (fmt or "pdf").lower()
    if fmt not in RECEIPT_FORMATS:
        raise ReceiptError("Unsupported format")

    receipts_dir = current_app.config["RECEIPTS_DIR"]
    os.makedirs(receipts_dir, exist_ok=True)

    filename = f"receipt_{sale.transaction_id}.{fmt}"
    path = os.path.join(receipts_dir, filename)
    settings = get_values()

    if fmt == "pdf":
        render_pdf(sale, settings, path)
    else:
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(render_text(sale, settings))

    return {
        "path": path,
        "filename": filename,
        "url": f"/receipts/{filename}",
    }

"""
Receipt PDF rendering using ReportLab.

Lays a receipt projection out on an 80mm roll so the staff client can print
or e-mail it without doing its own formatting.
"""

from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .models import ReceiptView

DARK_COLOR = colors.HexColor("#1f2937")
MUTED_COLOR = colors.HexColor("#6b7280")
BORDER_COLOR = colors.HexColor("#e5e7eb")

ROLL_WIDTH = 80 * mm
_COL_WIDTHS = [34 * mm, 8 * mm, 12 * mm, 14 * mm]


def _money(cents: int, currency_symbol: str) -> str:
    return f"{currency_symbol}{cents / 100:,.2f}"


def _page_height(receipt: ReceiptView) -> float:
    # Header, totals and footer take roughly 95mm; each row adds about 7mm
    return 95 * mm + 7 * mm * (len(receipt.items) + len(receipt.payments))


def generate_receipt_pdf(receipt: ReceiptView, currency_symbol: str = "") -> BytesIO:
    """
    Render a receipt as a single-page PDF.

    Returns:
        BytesIO buffer positioned at the start of the PDF
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=(ROLL_WIDTH, _page_height(receipt)),
        rightMargin=5 * mm,
        leftMargin=5 * mm,
        topMargin=5 * mm,
        bottomMargin=5 * mm,
        title=receipt.receipt_number,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReceiptTitle",
        parent=styles["Heading2"],
        fontSize=12,
        textColor=DARK_COLOR,
        alignment=TA_CENTER,
        spaceAfter=1 * mm,
    )
    meta_style = ParagraphStyle(
        "ReceiptMeta",
        parent=styles["Normal"],
        fontSize=7,
        textColor=MUTED_COLOR,
        alignment=TA_CENTER,
        leading=9,
    )
    cell_style = ParagraphStyle(
        "ReceiptCell",
        parent=styles["Normal"],
        fontSize=7,
        textColor=DARK_COLOR,
        leading=9,
    )
    number_style = ParagraphStyle("ReceiptNumber", parent=cell_style, alignment=TA_RIGHT)
    total_style = ParagraphStyle(
        "ReceiptTotal",
        parent=number_style,
        fontSize=9,
        fontName="Helvetica-Bold",
    )

    story = []

    # ===== HEADER =====
    story.append(Paragraph(escape(receipt.branch_name or "Receipt"), title_style))
    issued = receipt.issued_at
    issued_str = issued.strftime("%d/%m/%Y %H:%M") if isinstance(issued, datetime) else str(issued)
    story.append(Paragraph(
        f"{receipt.receipt_number}<br/>Order #{receipt.order_id} - {escape(receipt.table)}<br/>{issued_str}",
        meta_style,
    ))
    story.append(Spacer(1, 3 * mm))
    story.append(HRFlowable(width="100%", thickness=0.5, color=BORDER_COLOR))

    # ===== ITEMS =====
    table_data = [[
        Paragraph("<b>Item</b>", cell_style),
        Paragraph("<b>Qty</b>", number_style),
        Paragraph("<b>Price</b>", number_style),
        Paragraph("<b>Total</b>", number_style),
    ]]
    for line in receipt.items:
        table_data.append([
            Paragraph(escape(line.name), cell_style),
            Paragraph(str(line.qty), number_style),
            Paragraph(_money(line.unit_price_cents, currency_symbol), number_style),
            Paragraph(_money(line.line_total_cents, currency_symbol), number_style),
        ])
    if not receipt.items:
        table_data.append([Paragraph("No items", cell_style), "", "", ""])

    items_table = Table(table_data, colWidths=_COL_WIDTHS, repeatRows=1)
    items_table.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("LEFTPADDING", (0, 0), (-1, -1), 1),
        ("RIGHTPADDING", (0, 0), (-1, -1), 1),
        ("LINEBELOW", (0, 0), (-1, 0), 0.5, BORDER_COLOR),
    ]))
    story.append(items_table)
    story.append(HRFlowable(width="100%", thickness=0.5, color=BORDER_COLOR))

    # ===== TOTALS & PAYMENTS =====
    totals_data = [[
        Paragraph("<b>TOTAL</b>", cell_style),
        Paragraph(_money(receipt.total_cents, currency_symbol), total_style),
    ]]
    for payment in receipt.payments:
        label = payment.method.value.upper()
        if payment.transaction_reference:
            label = f"{label} ({escape(payment.transaction_reference)})"
        totals_data.append([
            Paragraph(label, cell_style),
            Paragraph(_money(payment.amount_cents, currency_symbol), number_style),
        ])

    totals_table = Table(totals_data, colWidths=[44 * mm, 24 * mm])
    totals_table.setStyle(TableStyle([
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("LEFTPADDING", (0, 0), (-1, -1), 1),
        ("RIGHTPADDING", (0, 0), (-1, -1), 1),
    ]))
    story.append(totals_table)

    # ===== FOOTER =====
    story.append(Spacer(1, 4 * mm))
    story.append(Paragraph("Thank you!", meta_style))

    doc.build(story)
    buffer.seek(0)
    return buffer

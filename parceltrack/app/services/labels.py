"""
PDF shipping label generation.

Renders a 4in x 6in label with sender and recipient blocks, a Code128
barcode of the tracking number and the parcel's weight and dimensions.
"""

from datetime import datetime
from io import BytesIO
from typing import List, Optional
from reportlab.graphics.barcode import code128
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from parceltrack.app.core.config import settings

LABEL_WIDTH = 4 * inch
LABEL_HEIGHT = 6 * inch
MARGIN = 0.25 * inch
CONTENT_WIDTH = LABEL_WIDTH - 2 * MARGIN
BARCODE_MAX_WIDTH = 3 * inch
BARCODE_HEIGHT = 0.75 * inch

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"


def label_filename(parcel) -> str:
    return f"label-{parcel.tracking_number}.pdf"


def _wrap(text: str, font: str, size: float) -> List[str]:
    lines = []
    for paragraph in (text or "").splitlines() or [""]:
        lines.extend(simpleSplit(paragraph, font, size, CONTENT_WIDTH) or [""])
    return lines


def _barcode(value: str):
    barcode = code128.Code128(value, barHeight=BARCODE_HEIGHT, barWidth=1.0, quiet=False)
    if barcode.width > BARCODE_MAX_WIDTH:
        barcode = code128.Code128(
            value,
            barHeight=BARCODE_HEIGHT,
            barWidth=BARCODE_MAX_WIDTH / barcode.width,
            quiet=False,
        )
    return barcode


def _address_block(c: canvas.Canvas, y: float, title: str, lines: List[str]) -> float:
    c.setFont(BOLD_FONT, 14)
    c.drawString(MARGIN, y, title)
    y -= 16
    
    c.setFont(BODY_FONT, 12)
    for line in lines:
        for wrapped in _wrap(line, BODY_FONT, 12):
            c.drawString(MARGIN, y, wrapped)
            y -= 14
    
    # Dashed separator
    y -= 4
    c.setStrokeColor(colors.lightgrey)
    c.setDash(3, 2)
    c.line(MARGIN, y, LABEL_WIDTH - MARGIN, y)
    c.setDash()
    c.setStrokeColor(colors.black)
    return y - 18


def render_label_pdf(
    parcel,
    company_name: Optional[str] = None,
    generated_at: Optional[datetime] = None
) -> bytes:
    """
    Render the shipping label of a parcel.
    
    Args:
        parcel: Parcel (or any object with the parcel's attributes)
        company_name: Header text, defaults to settings.label_company_name
        generated_at: Footer timestamp, defaults to now
        
    Returns:
        PDF document bytes
    """
    company_name = company_name or settings.label_company_name
    generated_at = generated_at or datetime.now()
    
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(LABEL_WIDTH, LABEL_HEIGHT))
    c.setTitle(f"Parcel Label - {parcel.tracking_number}")
    
    # Border
    c.setLineWidth(1)
    c.rect(2, 2, LABEL_WIDTH - 4, LABEL_HEIGHT - 4)
    
    y = LABEL_HEIGHT - MARGIN - 8
    
    # Company header
    c.setFont(BODY_FONT, 10)
    c.setFillColor(colors.grey)
    c.drawRightString(LABEL_WIDTH - MARGIN, y, company_name)
    c.setFillColor(colors.black)
    y -= 24
    
    y = _address_block(c, y, "FROM:", [parcel.sender_name, parcel.sender_address])
    
    recipient_lines = [parcel.recipient_name, parcel.recipient_address]
    if parcel.recipient_phone:
        recipient_lines.append(f"Tel: {parcel.recipient_phone}")
    y = _address_block(c, y, "TO:", recipient_lines)
    
    # Barcode
    barcode = _barcode(parcel.tracking_number)
    y -= BARCODE_HEIGHT
    barcode.drawOn(c, (LABEL_WIDTH - barcode.width) / 2, y)
    y -= 20
    
    c.setFont(BOLD_FONT, 16)
    c.drawCentredString(LABEL_WIDTH / 2, y, parcel.tracking_number)
    y -= 28
    
    # Physical details
    weight = f"{parcel.weight} kg" if parcel.weight is not None else "N/A"
    c.setFont(BOLD_FONT, 12)
    c.drawString(MARGIN, y, "Weight:")
    c.drawString(MARGIN, y - 16, "Dimensions:")
    c.setFont(BODY_FONT, 12)
    c.drawString(MARGIN + 80, y, weight)
    c.drawString(MARGIN + 80, y - 16, parcel.dimensions or "N/A")
    
    c.setFont(BODY_FONT, 10)
    c.drawCentredString(LABEL_WIDTH / 2, MARGIN, f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}")
    
    c.showPage()
    c.save()
    return buffer.getvalue()

# Overview: QR sticker sheets for tagging stock units.

"""
Sticker Sheets

One sticker per available unit, each with the item name, a QR code of the
barcode (error correction M) and the price. Stickers are laid out on A4 in a
fixed 7 x 5 grid with 8 mm page padding and 1.5 mm gaps, 35 per page.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import Iterable

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from ..errors import InvalidInput
from .inventory_store import StockItemView
from .invoice_renderer import format_money


STICKERS_PER_ROW = 7
STICKERS_PER_COLUMN = 5
STICKERS_PER_PAGE = STICKERS_PER_ROW * STICKERS_PER_COLUMN

PAGE_WIDTH_MM = 210
PAGE_HEIGHT_MM = 297
PAGE_PADDING_MM = 8
GAP_MM = 1.5

STICKER_WIDTH_MM = (PAGE_WIDTH_MM - PAGE_PADDING_MM * 2 - (STICKERS_PER_ROW - 1) * GAP_MM) / STICKERS_PER_ROW
STICKER_HEIGHT_MM = (PAGE_HEIGHT_MM - PAGE_PADDING_MM * 2 - (STICKERS_PER_COLUMN - 1) * GAP_MM) / STICKERS_PER_COLUMN
QR_SIZE_MM = STICKER_WIDTH_MM * 0.8

FONT = "Helvetica-Bold"
FONT_SIZE = 6


@dataclass(frozen=True)
class Sticker:
    name: str
    barcode: str
    price_cents: int


def expand_stickers(items: Iterable[StockItemView]) -> list[Sticker]:
    """One sticker per available unit, items in the given order."""
    stickers: list[Sticker] = []
    for item in items:
        sticker = Sticker(name=item.name, barcode=item.barcode, price_cents=item.price_cents)
        stickers.extend([sticker] * max(item.available, 0))
    return stickers


def paginate(stickers: list[Sticker]) -> list[list[Sticker]]:
    return [
        stickers[start:start + STICKERS_PER_PAGE]
        for start in range(0, len(stickers), STICKERS_PER_PAGE)
    ]


def sticker_origin_mm(slot: int) -> tuple[float, float]:
    """
    Bottom-left corner of a page slot, in mm from the bottom-left of the page.
    Slots fill rows left to right, top row first.
    """
    row, col = divmod(slot, STICKERS_PER_ROW)
    x = PAGE_PADDING_MM + col * (STICKER_WIDTH_MM + GAP_MM)
    top = PAGE_HEIGHT_MM - PAGE_PADDING_MM - row * (STICKER_HEIGHT_MM + GAP_MM)
    return x, top - STICKER_HEIGHT_MM


def sticker_filename(name: str) -> str:
    return f"{re.sub(r'[^a-z0-9]', '_', name, flags=re.IGNORECASE)}_qr_codes.pdf"


def _qr_matrix(value: str) -> list[list[bool]]:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=0)
    qr.add_data(value)
    qr.make(fit=True)
    return qr.get_matrix()


def _fit_text(text: str, width: float) -> str:
    if stringWidth(text, FONT, FONT_SIZE) <= width:
        return text
    while text and stringWidth(text + "...", FONT, FONT_SIZE) > width:
        text = text[:-1]
    return text + "..."


def _draw_sticker(pdf: canvas.Canvas, sticker: Sticker, slot: int, currency: str, matrix: list[list[bool]]) -> None:
    x_mm, y_mm = sticker_origin_mm(slot)
    x, y = x_mm * mm, y_mm * mm
    width, height = STICKER_WIDTH_MM * mm, STICKER_HEIGHT_MM * mm
    center = x + width / 2

    pdf.setLineWidth(1.5)
    pdf.rect(x, y, width, height, stroke=1, fill=0)

    pdf.setFont(FONT, FONT_SIZE)
    pdf.drawCentredString(center, y + height - 3 * mm, _fit_text(sticker.name, width - 2 * mm))
    pdf.drawCentredString(center, y + 2 * mm, format_money(sticker.price_cents, currency))

    qr_size = QR_SIZE_MM * mm
    module = qr_size / len(matrix)
    qr_x = center - qr_size / 2
    qr_top = y + height / 2 + qr_size / 2
    for r, row in enumerate(matrix):
        for c, dark in enumerate(row):
            if dark:
                pdf.rect(qr_x + c * module, qr_top - (r + 1) * module, module, module, stroke=0, fill=1)


def render_sticker_sheet(items: Iterable[StockItemView], currency: str = "EGP", title: str = "QR stickers") -> bytes:
    """
    Build the sticker PDF for the given items.

    Raises InvalidInput when there is nothing to print.
    """
    stickers = expand_stickers(items)
    if not stickers:
        raise InvalidInput("No items in inventory to generate QR codes.")

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    pdf.setTitle(title)

    matrices: dict[str, list[list[bool]]] = {}
    for page in paginate(stickers):
        for slot, sticker in enumerate(page):
            if sticker.barcode not in matrices:
                matrices[sticker.barcode] = _qr_matrix(sticker.barcode)
            _draw_sticker(pdf, sticker, slot, currency, matrices[sticker.barcode])
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()

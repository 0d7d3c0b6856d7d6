"""Printable invoice documents and invoice numbering."""

from datetime import datetime

import pytest

from yomo.services.invoice_renderer import StoreInfo, format_money, render_invoice
from yomo.services.invoice_service import invoice_number
from yomo.time_utils import display_datetime, store_zone


ISSUED = datetime(2026, 10, 18, 9, 5)
STORE = StoreInfo(name="Yomo", address="Manshiyet el Bakri, Cairo", phone="0120 1675335", currency="EGP")

LINES = [
    {"name": "Basic Tee", "price_cents": 25000, "quantity": 2, "total_cents": 50000},
    {"name": "Denim <Slim>", "price_cents": 60050, "quantity": 1, "total_cents": 60050},
]


@pytest.mark.parametrize("cents,negative,expected", [
    (1999, False, "19.99 EGP"),
    (5, False, "0.05 EGP"),
    (25000, True, "-250.00 EGP"),
    (0, True, "0.00 EGP"),
])
def test_format_money(cents, negative, expected):
    assert format_money(cents, "EGP", negative=negative) == expected


@pytest.mark.parametrize("zone_name,expected", [
    (None, "15/01/2026, 09:05"),
    ("Africa/Cairo", "15/01/2026, 11:05"),
    ("Asia/Tokyo", "15/01/2026, 18:05"),
])
def test_display_datetime_in_store_zone(zone_name, expected):
    assert display_datetime(datetime(2026, 1, 15, 9, 5), store_zone(zone_name)) == expected


def test_invoice_numbers():
    assert invoice_number(False, 1760000000123) == "INV-1760000000123"
    assert invoice_number(True, 1760000000123) == "REF-1760000000123"


class TestRenderInvoice:

    def test_sale_document(self):
        html = render_invoice(LINES, 110050, False, "INV-1", store=STORE, issued_at=ISSUED)

        assert "SALES INVOICE" in html
        assert '<span class="invoice-number">INV-1</span>' in html
        assert '<span class="invoice-date">18/10/2026, 09:05</span>' in html
        assert html.count('<tr class="line">') == 2
        assert '<td class="text-right grand-total">1100.50 EGP</td>' in html
        assert "THIS IS A REFUND TRANSACTION" not in html
        assert 'onload="window.print()"' in html
        assert "Manshiyet el Bakri, Cairo" in html

    def test_refund_document_shows_negated_amounts(self):
        html = render_invoice(LINES[:1], 50000, True, "REF-1", store=STORE, issued_at=ISSUED)

        assert "REFUND RECEIPT" in html
        assert "THIS IS A REFUND TRANSACTION" in html
        assert '<td class="line-price">-250.00 EGP</td>' in html
        assert '<td class="text-right grand-total">-500.00 EGP</td>' in html

    def test_item_names_are_escaped(self):
        html = render_invoice(LINES, 110050, False, "INV-1", store=STORE, issued_at=ISSUED)

        assert "Denim &lt;Slim&gt;" in html
        assert "Denim <Slim>" not in html

    def test_date_printed_in_store_zone(self):
        cairo = StoreInfo(name="Yomo", currency="EGP", timezone_name="Africa/Cairo")
        html = render_invoice(LINES, 110050, False, "INV-1", store=cairo, issued_at=datetime(2026, 1, 15, 22, 30))

        assert '<span class="invoice-date">16/01/2026, 00:30</span>' in html

    def test_same_input_same_document(self):
        first = render_invoice(LINES, 110050, False, "INV-1", store=STORE, issued_at=ISSUED)
        second = render_invoice(LINES, 110050, False, "INV-1", store=STORE, issued_at=ISSUED)
        assert first == second

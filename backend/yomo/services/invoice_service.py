# Overview: Service-layer operations for invoices; numbering, archiving and the invoice list.

"""
Invoice Service

Invoices are written once, at checkout, before any stock is touched, and
never modified afterwards.

NUMBERING: "INV-<unix ms>" for sales, "REF-<unix ms>" for refunds. Two
checkouts in the same millisecond get the same number; the archive keeps
both rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import InvalidInput, NotFound, PersistenceError
from ..extensions import db
from ..models import Invoice
from ..time_utils import display_datetime, store_zone, unix_ms, utcnow
from .cart_engine import CartLine


SALE_PREFIX = "INV"
REFUND_PREFIX = "REF"

FILTER_ALL = "all"
FILTER_SALES = "sales"
FILTER_REFUNDS = "refunds"
FILTERS = (FILTER_ALL, FILTER_SALES, FILTER_REFUNDS)


def invoice_number(is_refund: bool, timestamp_ms: int) -> str:
    return f"{REFUND_PREFIX if is_refund else SALE_PREFIX}-{timestamp_ms}"


def build_invoice_items(lines: Iterable[CartLine]) -> list[dict]:
    return [
        {
            "name": line.name,
            "price_cents": line.price_cents,
            "quantity": line.cart_quantity,
            "total_cents": line.subtotal_cents,
        }
        for line in lines
    ]


def save_invoice(
    lines: list[CartLine],
    subtotal_cents: int,
    is_refund: bool,
    now: datetime | None = None,
) -> Invoice:
    """
    Persist the invoice for a checkout. Raises PersistenceError on failure.

    date is the shop-local display string (STORE_TIMEZONE); timestamp stays
    in UTC milliseconds.
    """
    now = now or utcnow()
    timestamp_ms = unix_ms(now)
    tz = store_zone(current_app.config.get("STORE_TIMEZONE"))

    invoice = Invoice(
        invoice_number=invoice_number(is_refund, timestamp_ms),
        date=display_datetime(now, tz),
        timestamp=timestamp_ms,
        items=build_invoice_items(lines),
        subtotal_cents=subtotal_cents,
        is_refund=is_refund,
    )

    try:
        db.session.add(invoice)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to save invoice") from exc

    return invoice


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFound(f"Invoice {invoice_id} not found")
    return invoice


def list_invoices(filter_name: str | None = None) -> dict:
    """
    Archive listing, newest first, with the figures shown above the list.

    The counts and totals always cover the whole archive; the filter only
    narrows the returned items.
    """
    filter_name = (filter_name or FILTER_ALL).strip().lower()
    if filter_name not in FILTERS:
        raise InvalidInput(f"filter must be one of: {', '.join(FILTERS)}")

    invoices = db.session.query(Invoice).order_by(Invoice.timestamp.desc(), Invoice.id.desc()).all()

    sales = [inv for inv in invoices if not inv.is_refund]
    refunds = [inv for inv in invoices if inv.is_refund]

    if filter_name == FILTER_SALES:
        selected = sales
    elif filter_name == FILTER_REFUNDS:
        selected = refunds
    else:
        selected = invoices

    total_sales_cents = sum(inv.subtotal_cents for inv in sales)
    total_refunds_cents = sum(inv.subtotal_cents for inv in refunds)

    return {
        "filter": filter_name,
        "items": [inv.to_dict() for inv in selected],
        "count": len(selected),
        "counts": {
            FILTER_ALL: len(invoices),
            FILTER_SALES: len(sales),
            FILTER_REFUNDS: len(refunds),
        },
        "total_sales_cents": total_sales_cents,
        "total_refunds_cents": total_refunds_cents,
        "net_revenue_cents": total_sales_cents - total_refunds_cents,
    }

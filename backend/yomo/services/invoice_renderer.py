# Overview: Renders finalized sales and refunds as printable HTML documents.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from jinja2 import Environment, PackageLoader, select_autoescape

from ..time_utils import display_datetime, from_unix_ms, store_zone, utcnow


SALE_ACCENT = "#3b82f6"
REFUND_ACCENT = "#ef4444"

_env = Environment(
    loader=PackageLoader("yomo", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class StoreInfo:
    name: str = "Yomo"
    address: str = ""
    phone: str = ""
    currency: str = "EGP"
    timezone_name: str | None = None

    @classmethod
    def from_config(cls, config: Mapping) -> "StoreInfo":
        return cls(
            name=config.get("STORE_NAME", cls.name),
            address=config.get("STORE_ADDRESS", cls.address),
            phone=config.get("STORE_PHONE", cls.phone),
            currency=config.get("CURRENCY", cls.currency),
            timezone_name=config.get("STORE_TIMEZONE", cls.timezone_name),
        )


def format_money(cents: int, currency: str, negative: bool = False) -> str:
    """1999 -> "19.99 EGP"; refunds are shown with a leading minus."""
    sign = "-" if negative and cents else ""
    return f"{sign}{abs(cents) // 100}.{abs(cents) % 100:02d} {currency}"


def render_invoice(
    lines: Iterable[Mapping],
    subtotal_cents: int,
    is_refund: bool,
    invoice_number: str,
    *,
    store: StoreInfo | None = None,
    issued_at: datetime | None = None,
) -> str:
    """
    Render an invoice or refund receipt.

    lines are invoice items: {name, price_cents, quantity, total_cents}.
    Amounts are stored as magnitudes; refunds only display them negated.
    The output depends on nothing but the arguments and the issue time.
    issued_at is naive UTC; it is printed in the store's zone.
    """
    store = store or StoreInfo()
    issued_at = issued_at or utcnow()

    rows = [
        {
            "name": line["name"],
            "price": format_money(line["price_cents"], store.currency, negative=is_refund),
            "quantity": line["quantity"],
            "total": format_money(line["total_cents"], store.currency, negative=is_refund),
        }
        for line in lines
    ]

    template = _env.get_template("invoice.html")
    return template.render(
        title="REFUND RECEIPT" if is_refund else "SALES INVOICE",
        accent=REFUND_ACCENT if is_refund else SALE_ACCENT,
        is_refund=is_refund,
        invoice_number=invoice_number,
        issued_on=display_datetime(issued_at, store_zone(store.timezone_name)),
        lines=rows,
        subtotal=format_money(subtotal_cents, store.currency, negative=is_refund),
        store=store,
    )


def render_stored_invoice(invoice, *, store: StoreInfo | None = None) -> str:
    """Re-render an archived Invoice row; the printed date is the original one."""
    return render_invoice(
        invoice.items or [],
        invoice.subtotal_cents,
        invoice.is_refund,
        invoice.invoice_number,
        store=store,
        issued_at=from_unix_ms(invoice.timestamp),
    )

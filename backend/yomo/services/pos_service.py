# Overview: Service-layer operations for the POS screen; binds the cart engine to a session and the database.

"""
POS Service

Each authenticated session owns one cart row (pos_carts). Every operation
loads the cart, runs one cart_engine call against a fresh inventory
snapshot and saves the cart back. Engine errors propagate unchanged after
the cart (and the scan debouncer state) has been saved.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import CameraUnavailable, CheckoutFailed, PersistenceError
from ..extensions import db
from ..models import PosCart
from ..time_utils import unix_ms, utcnow
from . import cart_engine, invoice_service, scan_adapter
from .cart_engine import Cart, CartLine, CheckoutResult
from .inventory_store import inventory_store
from .invoice_renderer import StoreInfo, render_invoice


def _to_cart(row: PosCart) -> Cart:
    return Cart(
        lines=[CartLine.from_dict(data) for data in (row.lines or [])],
        mode=row.mode or cart_engine.MODE_SALE,
        checkout_status=row.checkout_status or cart_engine.STATUS_IDLE,
        status_expires_at=row.status_expires_at,
        status_message=row.status_message,
        camera_unavailable=bool(row.camera_unavailable),
    )


def _store_cart(row: PosCart, cart: Cart) -> None:
    row.lines = [
        {key: value for key, value in line.to_dict().items() if key != "subtotal_cents"}
        for line in cart.lines
    ]
    row.mode = cart.mode
    row.checkout_status = cart.checkout_status
    row.status_expires_at = cart.status_expires_at
    row.status_message = cart.status_message
    row.camera_unavailable = cart.camera_unavailable


def _commit() -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to save cart") from exc


def load_cart(session_id: int) -> tuple[PosCart, Cart]:
    """Return the session's cart row and engine cart, creating an empty one on first use."""
    row = db.session.query(PosCart).filter_by(session_id=session_id).first()
    if not row:
        row = PosCart(
            session_id=session_id,
            mode=cart_engine.MODE_SALE,
            lines=[],
            checkout_status=cart_engine.STATUS_IDLE,
            camera_unavailable=False,
        )
        db.session.add(row)
        _commit()
    return row, _to_cart(row)


def save_cart(row: PosCart, cart: Cart) -> None:
    _store_cart(row, cart)
    _commit()


def get_cart(session_id: int) -> dict:
    _, cart = load_cart(session_id)
    return cart.to_dict()


def scan(session_id: int, barcode, source: str = scan_adapter.SOURCE_MANUAL, now_ms: int | None = None) -> dict:
    """
    Feed one detection or manual entry into the session's cart.

    Duplicate camera detections inside the cooldown window are reported as
    ignored and do not touch the cart.
    """
    row, cart = load_cart(session_id)
    if source == scan_adapter.SOURCE_CAMERA and cart.camera_unavailable:
        raise CameraUnavailable(
            "Camera is unavailable for this session. Enter the barcode manually.",
        )
    now_ms = now_ms if now_ms is not None else unix_ms()

    debouncer = scan_adapter.ScanDebouncer(
        cooldown_ms=current_app.config.get("SCAN_COOLDOWN_MS", scan_adapter.DEFAULT_COOLDOWN_MS),
        last_code=row.last_scan_code,
        last_at_ms=row.last_scan_at_ms,
    )
    code = scan_adapter.observe(debouncer, barcode, source, now_ms)
    if code is None:
        return {"ignored": True, "line": None, "cart": cart.to_dict()}

    row.last_scan_code = debouncer.last_code
    row.last_scan_at_ms = debouncer.last_at_ms

    try:
        line = cart_engine.register_scan(cart, code, inventory_store.snapshot())
    finally:
        save_cart(row, cart)

    return {"ignored": False, "line": line.to_dict(), "cart": cart.to_dict()}


def scanner_error(session_id: int, name: str | None) -> None:
    """
    Report a browser scanner failure.

    Permission/device errors mark the session's camera unavailable and raise
    CameraUnavailable; anything else is logged and dropped.
    """
    error = scan_adapter.classify_scanner_error(name)
    if error is not None:
        row, cart = load_cart(session_id)
        cart.camera_unavailable = True
        save_cart(row, cart)
        raise error
    current_app.logger.info("Scanner reported %s", name)


def adjust(session_id: int, item_id: int, delta: int) -> dict:
    row, cart = load_cart(session_id)
    cart_engine.adjust_quantity(cart, item_id, delta, inventory_store.snapshot())
    save_cart(row, cart)
    return cart.to_dict()


def remove(session_id: int, item_id: int) -> dict:
    row, cart = load_cart(session_id)
    cart_engine.remove_line(cart, item_id)
    save_cart(row, cart)
    return cart.to_dict()


def set_mode(session_id: int, mode) -> dict:
    row, cart = load_cart(session_id)
    cart_engine.set_mode(cart, mode, inventory_store.snapshot())
    save_cart(row, cart)
    return cart.to_dict()


def checkout(session_id: int) -> tuple[CheckoutResult, Cart]:
    """
    Run a checkout for the session's cart.

    The processing status is saved before any write so that concurrent
    requests on the same session see the cart as locked. Stock rows are
    written line by line without notifying subscribers; one snapshot is
    published once every line has settled.
    """
    row, cart = load_cart(session_id)
    snapshot = inventory_store.snapshot()
    config = current_app.config

    now = utcnow()
    cart_engine.begin_checkout(cart, now)
    save_cart(row, cart)

    store = StoreInfo.from_config(config)

    def save(lines, total_cents, is_refund):
        return invoice_service.save_invoice(lines, total_cents, is_refund, now)

    def apply_line(item, quantity, is_refund):
        return inventory_store.apply_stock_delta(item, quantity, refund=is_refund, notify=False)

    def render(invoice):
        return render_invoice(
            invoice.items,
            invoice.subtotal_cents,
            invoice.is_refund,
            invoice.invoice_number,
            store=store,
            issued_at=now,
        )

    failure_reset = config.get("CHECKOUT_FAILURE_RESET_SECONDS", cart_engine.FAILURE_RESET_SECONDS)

    try:
        result = cart_engine.complete_checkout(
            cart,
            snapshot,
            save_invoice=save,
            apply_line=apply_line,
            render_invoice=render,
            now=utcnow(),
            success_reset_seconds=config.get("CHECKOUT_SUCCESS_RESET_SECONDS", cart_engine.SUCCESS_RESET_SECONDS),
            failure_reset_seconds=failure_reset,
        )
    except Exception as exc:
        # Stock rows may already be written; the cart is kept with a failure status
        current_app.logger.exception("Checkout aborted for session %s", session_id)
        db.session.rollback()
        message = cart_engine.fail_checkout(cart, now=utcnow(), seconds=failure_reset)
        save_cart(row, cart)
        inventory_store.publish()
        raise CheckoutFailed(message) from exc

    if result.line_results:
        inventory_store.publish()

    for failed in result.failed_lines:
        current_app.logger.warning(
            "Checkout line failed: item=%s qty=%s refund=%s error=%s",
            failed.line.item_id,
            failed.line.cart_quantity,
            result.is_refund,
            failed.error.message if failed.error else None,
        )

    save_cart(row, cart)
    return result, cart

# Overview: Flask API routes for the POS screen; scanning, cart edits, mode switch and checkout.

# backend/yomo/routes/pos.py
"""
Point-of-sale routes.

Every route works on the cart of the calling session. Errors carry
expires_in_ms so the screen can clear the message on its own; the cart in
the response is always the state after the call.
"""
from flask import Blueprint, jsonify, request, current_app, g

from ..errors import CheckoutFailed, InvalidInput, ShopError
from ..responses import error_response
from ..services import pos_service
from ..services.scan_adapter import SOURCE_MANUAL
from ..decorators import require_auth


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _session_id() -> int:
    return g.session_context.session_id


def _cart_error(e: ShopError):
    """Error body with the unchanged cart attached."""
    try:
        cart = pos_service.get_cart(_session_id())
    except ShopError:
        cart = None
    return error_response(e, cart=cart)


@pos_bp.get("/cart")
@require_auth
def cart_route():
    try:
        return pos_service.get_cart(_session_id()), 200
    except ShopError as e:
        return error_response(e)


@pos_bp.post("/scan")
@require_auth
def scan_route():
    """
    Register one barcode.

    Body: {barcode: str, source: "camera" | "manual"}
    Camera detections repeating the last code inside the cooldown come back
    with ignored=true.
    """
    data = request.get_json(silent=True) or {}

    try:
        result = pos_service.scan(
            _session_id(),
            data.get("barcode"),
            data.get("source") or SOURCE_MANUAL,
        )
    except ShopError as e:
        return _cart_error(e)
    except Exception:
        current_app.logger.exception("Failed to register scan")
        return jsonify({"error": "Internal server error"}), 500

    return result, 200


@pos_bp.post("/scanner-error")
@require_auth
def scanner_error_route():
    """Report a camera failure raised by the browser scanner widget."""
    data = request.get_json(silent=True) or {}

    try:
        pos_service.scanner_error(_session_id(), data.get("name"))
    except ShopError as e:
        return error_response(e)

    return {"ok": True}, 200


@pos_bp.post("/cart/lines/<int:item_id>/adjust")
@require_auth
def adjust_line_route(item_id: int):
    """Body: {delta: int}; a result below 1 removes the line."""
    data = request.get_json(silent=True) or {}

    try:
        cart = pos_service.adjust(_session_id(), item_id, data.get("delta"))
    except ShopError as e:
        return _cart_error(e)

    return cart, 200


@pos_bp.delete("/cart/lines/<int:item_id>")
@require_auth
def remove_line_route(item_id: int):
    try:
        cart = pos_service.remove(_session_id(), item_id)
    except ShopError as e:
        return _cart_error(e)

    return cart, 200


@pos_bp.post("/mode")
@require_auth
def mode_route():
    """Body: {mode: "sale" | "refund"}"""
    data = request.get_json(silent=True) or {}
    mode = data.get("mode")
    if not isinstance(mode, str):
        return error_response(InvalidInput("mode is required"))

    try:
        cart = pos_service.set_mode(_session_id(), mode)
    except ShopError as e:
        return _cart_error(e)

    return cart, 200


@pos_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Check out the cart.

    200 with the invoice and its printable document when every line was
    applied. A failed checkout returns CHECKOUT_FAILED with per-line results;
    the cart is kept and inventory may be partially updated.
    """
    try:
        result, cart = pos_service.checkout(_session_id())
    except ShopError as e:
        return _cart_error(e)
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500

    lines = [r.to_dict() for r in result.line_results]
    invoice = result.invoice.to_dict() if result.invoice is not None else None

    if not result.succeeded:
        error = CheckoutFailed(result.message, details={"lines": lines})
        return error_response(error, cart=cart.to_dict(), invoice=invoice)

    return {
        "status": result.status,
        "message": result.message,
        "is_refund": result.is_refund,
        "total_cents": result.total_cents,
        "invoice": invoice,
        "document": result.document,
        "lines": lines,
        "cart": cart.to_dict(),
    }, 200

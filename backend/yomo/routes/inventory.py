# Overview: Flask API routes for the stock list; CRUD, live stream and QR sticker sheets.

# backend/yomo/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require an authenticated session. The stream and the
sticker downloads also accept ?token= because the browser opens them
directly.

Items are addressed by (category, id), the storage partition key.
"""
import json
import queue

from flask import Blueprint, Response, current_app, request, stream_with_context

from ..errors import PersistenceError, ShopError
from ..extensions import db
from ..models import CATEGORIES, DEFAULT_CATEGORY
from ..responses import error_response
from ..services.inventory_store import inventory_store
from ..services.sticker_service import render_sticker_sheet, sticker_filename
from ..decorators import require_auth, require_auth_or_query_token


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

STREAM_KEEPALIVE_SECONDS = 15


@inventory_bp.get("")
@require_auth
def list_inventory_route():
    """
    List stock items.

    Query params:
    - q: str (optional) - case-insensitive match on name, barcode or category
    """
    try:
        items = inventory_store.search(request.args.get("q"))
    except ShopError as e:
        return error_response(e)

    return {"items": [item.to_dict() for item in items], "count": len(items)}, 200


@inventory_bp.get("/categories")
@require_auth
def categories_route():
    return {"categories": list(CATEGORIES), "default": DEFAULT_CATEGORY}, 200


@inventory_bp.post("")
@require_auth
def create_item_route():
    """
    Add a stock item.

    Body: {name, price_cents, total, category?, barcode?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        item = inventory_store.create(payload)
    except ShopError as e:
        return error_response(e)

    return item.to_dict(), 201


@inventory_bp.put("/<category>/<int:item_id>")
@require_auth
def update_item_route(category: str, item_id: int):
    """
    Edit a stock item.

    A category change moves the item and returns it under its new id.
    """
    payload = request.get_json(silent=True) or {}

    try:
        item = inventory_store.update(item_id, category, payload)
    except ShopError as e:
        return error_response(e)

    return item.to_dict(), 200


@inventory_bp.delete("/<category>/<int:item_id>")
@require_auth
def delete_item_route(category: str, item_id: int):
    try:
        inventory_store.delete(item_id, category)
    except ShopError as e:
        return error_response(e)

    return {"ok": True}, 200


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@inventory_bp.get("/stream")
@require_auth_or_query_token
def stream_route():
    """
    Server-sent events with the full inventory on every change.

    The current snapshot is sent first. With ?once=1 the stream ends after
    it, for clients that poll.
    """
    once = request.args.get("once") in {"1", "true"}
    events: queue.Queue = queue.Queue()

    def on_change(snapshot):
        events.put(("snapshot", {"items": snapshot.to_list(), "count": len(snapshot)}))

    def on_error(exc: PersistenceError):
        events.put(("error", exc.to_dict()))

    @stream_with_context
    def generate():
        unsubscribe = inventory_store.subscribe(on_change, on_error)
        # Later snapshots are built by the writer; hand the connection back
        db.session.remove()
        try:
            while True:
                try:
                    event, data = events.get(timeout=STREAM_KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keepalive\n\n"
                    continue
                yield _sse(event, data)
                if once:
                    return
        finally:
            unsubscribe()

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


def _pdf_response(pdf: bytes, filename: str) -> Response:
    return Response(
        pdf,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@inventory_bp.get("/stickers.pdf")
@require_auth_or_query_token
def all_stickers_route():
    """One QR sticker per available unit of every item."""
    try:
        pdf = render_sticker_sheet(
            inventory_store.snapshot(),
            currency=current_app.config.get("CURRENCY", "EGP"),
            title="All inventory QR codes",
        )
    except ShopError as e:
        return error_response(e)

    return _pdf_response(pdf, "all_inventory_qr_codes.pdf")


@inventory_bp.get("/<category>/<int:item_id>/stickers.pdf")
@require_auth_or_query_token
def item_stickers_route(category: str, item_id: int):
    try:
        item = inventory_store.get(item_id, category)
        pdf = render_sticker_sheet(
            [item],
            currency=current_app.config.get("CURRENCY", "EGP"),
            title=f"{item.name} QR codes",
        )
    except ShopError as e:
        return error_response(e)

    return _pdf_response(pdf, sticker_filename(item.name))

# Overview: Flask API routes for the invoice archive; listing, detail and print view.

# backend/yomo/routes/invoices.py
from flask import Blueprint, Response, current_app, request

from ..errors import ShopError
from ..responses import error_response
from ..services import invoice_service
from ..services.invoice_renderer import StoreInfo, render_stored_invoice
from ..decorators import require_auth, require_auth_or_query_token


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    List archived invoices, newest first.

    Query params:
    - filter: all | sales | refunds (default all)

    Counts and revenue totals always cover the whole archive.
    """
    try:
        return invoice_service.list_invoices(request.args.get("filter")), 200
    except ShopError as e:
        return error_response(e)


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id)
    except ShopError as e:
        return error_response(e)

    return invoice.to_dict(), 200


@invoices_bp.get("/<int:invoice_id>/print")
@require_auth_or_query_token
def print_invoice_route(invoice_id: int):
    """Printable HTML; the page opens the print dialog on load."""
    try:
        invoice = invoice_service.get_invoice(invoice_id)
    except ShopError as e:
        return error_response(e)

    html = render_stored_invoice(invoice, store=StoreInfo.from_config(current_app.config))
    return Response(html, mimetype="text/html")

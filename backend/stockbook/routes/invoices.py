# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import InvoicingError
from ..services import invoice_service
from ..decorators import require_auth


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("/new")
@require_auth
def preview_invoice_route():
    """
    Number the next invoice would get. Informational only: nothing is
    reserved, so a concurrent create may take this number first.
    """
    try:
        invoice_no, business_date = invoice_service.preview_next_invoice_no(g.user_id)
        return jsonify({
            "invoice_no": invoice_no,
            "business_date": business_date.isoformat(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to preview invoice number")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create invoice, decrement stock and post sales atomically.

    Body: {customer_name, contact, address, tax_id, items: [{description, quantity, rate}]}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body required", "code": "invalid_input", "details": {}}), 400

    customer = data.get("customer")
    if customer is None:
        customer = {
            "name": data.get("customer_name"),
            "contact": data.get("contact"),
            "address": data.get("address"),
            "tax_id": data.get("tax_id", data.get("gst_no")),
        }
    lines = data.get("items", data.get("lines"))

    try:
        created = invoice_service.create_invoice(g.user_id, customer, lines)
        current_app.logger.info("Invoice %s created for user %s", created.invoice_no, g.user_id)
        return jsonify(created.to_dict()), 201

    except InvoicingError as e:
        current_app.logger.warning(
            "Invoice rejected for user %s: %s (%s)", g.user_id, e.message, e.code
        )
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<path:invoice_no>")
@require_auth
def get_invoice_route(invoice_no: str):
    """Invoice header with line items, only if it belongs to the caller."""
    try:
        invoice = invoice_service.get_invoice(g.user_id, invoice_no)
        return jsonify({"invoice": invoice.to_dict(include_lines=True)}), 200

    except InvoicingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load invoice")
        return jsonify({"error": "Internal server error"}), 500

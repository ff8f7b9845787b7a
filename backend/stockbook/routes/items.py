# Overview: Flask API routes for stock items; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import InvoicingError
from ..services import stock_service
from ..decorators import require_auth


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.post("")
@require_auth
def add_stock_route():
    """Add stock to an item, creating it on first use."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "JSON object body required", "code": "invalid_input", "details": {}}), 400

    try:
        item, created = stock_service.add_stock(
            g.user_id,
            data.get("name"),
            data.get("quantity"),
            data.get("buying_rate"),
            data.get("selling_rate"),
        )
        return jsonify({
            "message": "New item added" if created else "Stock updated",
            "item": item.to_dict(),
        }), 201 if created else 200

    except InvoicingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to add stock")
        return jsonify({"error": "Internal server error"}), 500


@items_bp.get("/names")
@require_auth
def item_names_route():
    return jsonify({"names": stock_service.list_item_names(g.user_id)}), 200


@items_bp.get("/info")
@require_auth
def item_info_route():
    try:
        item = stock_service.get_item_info(g.user_id, request.args.get("name"))
        return jsonify({"item": item.to_dict()}), 200
    except InvoicingError as e:
        return jsonify(e.to_dict()), e.status_code

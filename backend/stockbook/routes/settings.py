# Overview: Flask API routes for shop settings.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import InvoicingError
from ..services import settings_service
from ..decorators import require_auth


settings_bp = Blueprint("settings", __name__, url_prefix="/api/shop-info")


@settings_bp.get("")
@require_auth
def get_shop_info_route():
    return jsonify({"settings": settings_service.get_shop_info(g.user_id)}), 200


@settings_bp.post("")
@require_auth
def update_shop_info_route():
    """Replace shop name, address, tax id and tax rate (percent, 0-100)."""
    data = request.get_json(silent=True)
    try:
        setting = settings_service.upsert_shop_info(g.user_id, data)
        return jsonify({"settings": setting.to_dict()}), 200

    except InvoicingError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update shop info")
        return jsonify({"error": "Internal server error"}), 500

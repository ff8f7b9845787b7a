# Overview: Flask API routes for sales reports; JSON data consumed by PDF/Excel renderers.

from flask import Blueprint, request, jsonify, g

from ..errors import InvoicingError
from ..services import reporting_service
from ..decorators import require_auth
from ..time_utils import parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/sales")


@reports_bp.get("/report")
@require_auth
def sales_report_route():
    """
    Committed sale postings between ?from= and ?to= (YYYY-MM-DD, inclusive,
    business dates).
    """
    try:
        date_from = parse_iso_date(request.args.get("from"))
        date_to = parse_iso_date(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "from/to must be YYYY-MM-DD", "code": "invalid_input", "details": {}}), 400

    try:
        report = reporting_service.sales_report(g.user_id, date_from, date_to)
        return jsonify(report), 200
    except InvoicingError as e:
        return jsonify(e.to_dict()), e.status_code

# Overview: Flask API routes for stored sales and receipt reprints.

# backend/shoppos/routes/sales.py
"""Sales history API routes"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Sale
from ..services import reporting_service
from ..services.company_service import get_company_profile
from ..services.receipt_service import items_from_sale_lines, render_receipt
from ..decorators import require_auth


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
def list_sales_route():
    """Most recent sales first. Query param: limit (default 10, max 100)."""
    limit = request.args.get("limit", default=10, type=int)
    limit = max(1, min(limit, 100))
    sales = reporting_service.recent_sales(limit)
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = db.session.get(Sale, sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404

    return jsonify({
        "sale": sale.to_dict(),
        "lines": [line.to_dict() for line in sale.lines],
    }), 200


@sales_bp.get("/<int:sale_id>/receipt")
@require_auth
def reprint_receipt_route(sale_id: int):
    """Receipt HTML rebuilt from the stored sale lines."""
    sale = db.session.get(Sale, sale_id)
    if not sale:
        return jsonify({"error": "Sale not found"}), 404

    html = render_receipt(
        sale,
        items_from_sale_lines(sale.lines),
        company=get_company_profile(),
        customer=sale.customer,
        currency_code=current_app.config.get("CURRENCY_CODE", "MMK"),
        currency_decimals=current_app.config.get("CURRENCY_DECIMALS", 0),
    )
    return current_app.response_class(html, mimetype="text/html")

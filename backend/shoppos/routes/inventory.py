# Overview: Flask API routes for manual stock adjustments.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import inventory_service
from ..services.inventory_service import InventoryError
from ..validation import ValidationError, parse_int
from ..decorators import require_auth, require_admin


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/adjustments")
@require_auth
def list_adjustments_route():
    limit = max(1, min(request.args.get("limit", default=50, type=int), 500))
    rows = inventory_service.list_adjustments(
        limit=limit,
        product_id=request.args.get("product_id", type=int),
    )
    return jsonify({"items": [r.to_dict() for r in rows], "count": len(rows)}), 200


@inventory_bp.get("/low-stock")
@require_auth
def low_stock_route():
    products = inventory_service.low_stock_products(current_app.config.get("LOW_STOCK_THRESHOLD", 10))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@inventory_bp.post("/adjustments")
@require_auth
@require_admin
def create_adjustment_route():
    """
    Body: product_id, adjustment_type (increase|decrease), quantity, reason, notes?
    """
    data = request.get_json(silent=True) or {}

    try:
        adjustment = inventory_service.adjust_stock(
            product_id=parse_int(data.get("product_id"), "product_id"),
            adjustment_type=data.get("adjustment_type"),
            quantity=parse_int(data.get("quantity"), "quantity"),
            reason=data.get("reason") or "",
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InventoryError as e:
        status = 404 if str(e) == "Product not found" else 400
        return jsonify({"error": str(e)}), status
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"adjustment": adjustment.to_dict()}), 201

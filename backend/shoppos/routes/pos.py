# Overview: Flask API routes for the register screen: cart, payment input, checkout.

# backend/shoppos/routes/pos.py
"""
POS API routes

The cart lives in the caller's checkout session (one per user, held in
process memory). Any authenticated user may build a cart; completing the
sale is checked by the checkout service.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Customer, Product
from ..services.cart_service import VALID_PAYMENT_METHODS, get_session_registry
from ..services.checkout_service import (
    Actor,
    CheckoutPermissionError,
    CheckoutService,
    CheckoutValidationError,
    InsufficientStockError,
    StoreCreditChangedError,
)
from ..services.credit_service import get_customer_balance
from ..services.sale_store import SqlSaleStore
from ..validation import ValidationError, parse_amount, parse_int
from ..decorators import require_auth


pos_bp = Blueprint("pos", __name__, url_prefix="/api/pos")


def _session():
    return get_session_registry().get(g.current_user.id)


def _session_payload(session) -> dict:
    """Session state with the attached customer's store credit applied."""
    available = 0
    if session.customer_id is not None:
        available = get_customer_balance(session.customer_id).store_credit
    return session.to_dict(available_credit=available)


@pos_bp.get("/session")
@require_auth
def get_session_route():
    return jsonify(_session_payload(_session())), 200


@pos_bp.put("/session")
@require_auth
def update_session_route():
    """
    Set checkout inputs. Only keys present in the body are changed.

    Body: customer_id (int|null), payment_method, paid_amount (int|null),
    wallet_phone (str|null)
    """
    data = request.get_json(silent=True) or {}
    session = _session()

    try:
        if "customer_id" in data:
            customer_id = data["customer_id"]
            if customer_id is not None:
                customer_id = parse_int(customer_id, "customer_id")
                if db.session.get(Customer, customer_id) is None:
                    return jsonify({"error": "Customer not found"}), 404
            session.customer_id = customer_id

        if "payment_method" in data:
            method = data["payment_method"]
            if method not in VALID_PAYMENT_METHODS:
                raise ValidationError(f"payment_method must be one of {list(VALID_PAYMENT_METHODS)}")
            session.payment_method = method

        if "paid_amount" in data:
            raw = data["paid_amount"]
            session.paid_amount = None if raw in (None, "") else parse_amount(raw, "paid_amount")

        if "wallet_phone" in data:
            phone = data["wallet_phone"]
            session.wallet_phone = (str(phone).strip() or None) if phone is not None else None
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(_session_payload(session)), 200


@pos_bp.post("/cart/items")
@require_auth
def add_cart_item_route():
    """
    Add one unit of a product to the cart.

    The product is re-read so the stock cap uses the current level. Adding a
    product already at its stock level leaves the cart unchanged.
    """
    data = request.get_json(silent=True) or {}
    try:
        product_id = parse_int(data.get("product_id"), "product_id")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        return jsonify({"error": "Product not found"}), 404

    session = _session()
    line = session.cart.add_item(product)
    payload = _session_payload(session)
    payload["added"] = line is not None
    return jsonify(payload), 200


@pos_bp.put("/cart/items/<int:product_id>")
@require_auth
def set_cart_quantity_route(product_id: int):
    data = request.get_json(silent=True) or {}
    try:
        quantity = parse_int(data.get("quantity"), "quantity")
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    session = _session()
    if session.cart.get(product_id) is None:
        return jsonify({"error": "Product not in cart"}), 404

    session.cart.set_quantity(product_id, quantity)
    return jsonify(_session_payload(session)), 200


@pos_bp.delete("/cart/items/<int:product_id>")
@require_auth
def remove_cart_item_route(product_id: int):
    session = _session()
    session.cart.remove_item(product_id)
    return jsonify(_session_payload(session)), 200


@pos_bp.delete("/cart")
@require_auth
def clear_cart_route():
    session = _session()
    session.cart.clear()
    return jsonify(_session_payload(session)), 200


@pos_bp.post("/checkout")
@require_auth
def checkout_route():
    """
    Complete the sale held in the caller's session.

    Returns the sale, its lines, the receipt HTML and fresh product and
    customer lists. The session is reset on success only.

    Body (optional): client_sale_id, a register-generated key; repeating a
    checkout with the same key returns the stored sale (replayed=true).
    """
    data = request.get_json(silent=True) or {}
    client_sale_id = data.get("client_sale_id")
    if client_sale_id is not None and not isinstance(client_sale_id, str):
        return jsonify({"error": "client_sale_id must be a string"}), 400
    if client_sale_id and len(client_sale_id.strip()) > 64:
        return jsonify({"error": "client_sale_id must be at most 64 characters"}), 400

    session = _session()
    service = CheckoutService.from_app_config(SqlSaleStore())

    try:
        result = service.checkout(session, Actor.from_user(g.current_user), client_sale_id=client_sale_id)
        return jsonify(result.to_dict()), 200 if result.replayed else 201

    except CheckoutPermissionError as e:
        return jsonify({"error": str(e), "details": e.details}), 403
    except CheckoutValidationError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except (InsufficientStockError, StoreCreditChangedError) as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Checkout failed"}), 500

# Overview: Flask API routes for customers; each row carries its ledger balances.

from flask import Blueprint, request

from ..decorators import require_auth, require_admin
from ..models import Customer
from ..services import customers_service
from ..validation import ConflictError, ModelValidationPolicy, NotFoundError, ValidationError, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    items = customers_service.list_customers(request.args.get("q"))
    return {"items": items, "count": len(items)}


@customers_bp.post("")
@require_auth
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return customers_service.create_customer(patch=patch), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        return customers_service.get_customer(customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        return customers_service.update_customer(customer_id=customer_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_admin
def delete_customer_route(customer_id: int):
    try:
        customers_service.delete_customer(customer_id=customer_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    return {"ok": True}, 200

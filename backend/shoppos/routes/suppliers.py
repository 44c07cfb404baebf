# Overview: Flask API routes for supplier records.

from flask import Blueprint, request

from ..decorators import require_auth, require_admin
from ..models import Supplier
from ..services import suppliers_service
from ..validation import ModelValidationPolicy, NotFoundError, ValidationError, validate_payload

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_person", "email", "phone", "address", "notes", "is_active"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers():
    items = suppliers_service.list_suppliers(request.args.get("q"))
    return {"items": items, "count": len(items)}


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    try:
        return suppliers_service.get_supplier(supplier_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.post("")
@require_auth
@require_admin
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return suppliers_service.create_supplier(patch=patch), 201


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_admin
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
        return suppliers_service.update_supplier(supplier_id=supplier_id, patch=patch), 200
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_admin
def delete_supplier_route(supplier_id: int):
    try:
        suppliers_service.delete_supplier(supplier_id=supplier_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}, 200

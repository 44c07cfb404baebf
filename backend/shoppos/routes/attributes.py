# Overview: Flask API routes for attribute definitions.

from flask import Blueprint, request

from ..decorators import require_auth, require_admin
from ..services import attributes_service
from ..validation import ConflictError, NotFoundError, ValidationError

attributes_bp = Blueprint("attributes", __name__, url_prefix="/api/attributes")


@attributes_bp.get("")
@require_auth
def list_attributes():
    """
    Query params:
    - q: name substring
    - active: 1 to list only active attributes (product forms)
    """
    active_only = (request.args.get("active") or "").strip().lower() in ("1", "true", "yes")
    items = attributes_service.list_attributes(request.args.get("q"), active_only=active_only)
    return {"items": items, "count": len(items)}


@attributes_bp.get("/<int:attribute_id>")
@require_auth
def get_attribute_route(attribute_id: int):
    try:
        return attributes_service.get_attribute(attribute_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@attributes_bp.post("")
@require_auth
@require_admin
def create_attribute_route():
    """Body: name, type (text|number|select|textarea), values (select only), is_active, is_required"""
    payload = request.get_json(silent=True) or {}
    try:
        created = attributes_service.create_attribute(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return created, 201


@attributes_bp.put("/<int:attribute_id>")
@require_auth
@require_admin
def update_attribute_route(attribute_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        return attributes_service.update_attribute(attribute_id, payload), 200
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404


@attributes_bp.delete("/<int:attribute_id>")
@require_auth
@require_admin
def delete_attribute_route(attribute_id: int):
    """Also removes the attribute's value from every product."""
    try:
        attributes_service.delete_attribute(attribute_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}, 200

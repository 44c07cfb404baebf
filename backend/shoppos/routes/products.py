# Overview: Flask API routes for the catalog (products, categories, brands, attribute values).

# backend/shoppos/routes/products.py
"""
Catalog routes.

SECURITY: All routes require authentication. Writes require the admin role.
"""
from flask import Blueprint, request

from ..services import attributes_service, products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "name",
        "description",
        "image_url",
        "category_id",
        "brand_id",
        "cost_price",
        "selling_price",
        "stock_quantity",
        "min_stock_level",
        "is_active",
    },
    required_on_create={"sku", "name", "selling_price"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
brands_bp = Blueprint("brands", __name__, url_prefix="/api/brands")


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - in_stock: 1 to list only products with stock > 0 (register grid)
    - q: name or SKU substring
    - category_id: int
    - include_inactive: 1 to include soft-deleted products
    """
    return products_service.list_products(
        in_stock=_flag("in_stock"),
        include_inactive=_flag("include_inactive"),
        search=request.args.get("q"),
        category_id=request.args.get("category_id", type=int),
    )


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except NotFoundError as e:
        return {"error": str(e)}, 404


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return updated, 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    """Soft-delete a product."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200


# =============================================================================
# CATEGORIES / BRANDS
# =============================================================================

@categories_bp.get("")
@require_auth
def list_categories():
    items = products_service.list_categories()
    return {"items": items, "count": len(items)}


@categories_bp.post("")
@require_auth
@require_admin
def create_category_route():
    payload = request.get_json(silent=True) or {}
    try:
        created = products_service.create_category(
            name=payload.get("name"),
            description=payload.get("description"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return created, 201


@brands_bp.get("")
@require_auth
def list_brands():
    items = products_service.list_brands()
    return {"items": items, "count": len(items)}


@brands_bp.post("")
@require_auth
@require_admin
def create_brand_route():
    payload = request.get_json(silent=True) or {}
    try:
        created = products_service.create_brand(
            name=payload.get("name"),
            description=payload.get("description"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return created, 201


@categories_bp.put("/<int:category_id>")
@require_auth
@require_admin
def update_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        return products_service.update_category(category_id, payload), 200
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404


@categories_bp.delete("/<int:category_id>")
@require_auth
@require_admin
def delete_category_route(category_id: int):
    try:
        products_service.delete_category(category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}, 200


@brands_bp.put("/<int:brand_id>")
@require_auth
@require_admin
def update_brand_route(brand_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        return products_service.update_brand(brand_id, payload), 200
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404


@brands_bp.delete("/<int:brand_id>")
@require_auth
@require_admin
def delete_brand_route(brand_id: int):
    try:
        products_service.delete_brand(brand_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}, 200


# =============================================================================
# PRODUCT ATTRIBUTE VALUES
# =============================================================================

@products_bp.get("/<int:product_id>/attributes")
@require_auth
def get_product_attributes_route(product_id: int):
    try:
        items = attributes_service.get_product_attributes(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": items, "count": len(items)}


@products_bp.put("/<int:product_id>/attributes")
@require_auth
@require_admin
def set_product_attributes_route(product_id: int):
    """
    Replace the product's attribute values.

    Body: {"attributes": {"<attribute_id>": "<value>", ...}}
    """
    payload = request.get_json(silent=True) or {}
    try:
        items = attributes_service.set_product_attributes(product_id, payload.get("attributes") or {})
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"items": items, "count": len(items)}, 200

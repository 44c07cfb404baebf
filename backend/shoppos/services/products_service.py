# backend/shoppos/services/products_service.py
"""
Catalog Service: products, categories and brands.

Products, categories and brands are soft-deleted (is_active=false) so sale
lines and products keep pointing at a real row. SKU and category/brand
names are unique.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Brand, Category, Product
from ..validation import ConflictError, NotFoundError, ValidationError

PRODUCT_MUTABLE_FIELDS = {
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
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_references(patch: dict) -> None:
    if patch.get("category_id") is not None and db.session.get(Category, patch["category_id"]) is None:
        raise ValidationError("Category not found")
    if patch.get("brand_id") is not None and db.session.get(Brand, patch["brand_id"]) is None:
        raise ValidationError("Brand not found")


def _sku_taken(sku: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def list_products(
    *,
    in_stock: bool = False,
    include_inactive: bool = False,
    search: str | None = None,
    category_id: int | None = None,
) -> dict:
    """
    Product listing for the catalog and the register grid.

    in_stock=True limits to stock_quantity > 0 (the register only offers
    sellable products). search matches name or SKU.
    """
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if in_stock:
        query = query.filter(Product.stock_quantity > 0)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))

    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if p is None:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict) -> dict:
    """
    Raises:
        ConflictError: SKU already exists
        ValidationError: unknown category or brand
    """
    sku = patch.get("sku")
    if not sku:
        raise ValidationError("sku is required")
    if _sku_taken(sku):
        raise ConflictError("SKU already exists.")
    _check_references(patch)

    p = Product()
    apply_product_patch(p, patch)
    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku and _sku_taken(patch["sku"], exclude_id=p.id):
        raise ConflictError("SKU already exists.")
    _check_references(patch)

    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """Soft-delete: preserve IDs and historical references."""
    p = get_product(product_id)
    if p.is_active:
        p.is_active = False
    db.session.commit()


# =============================================================================
# CATEGORIES / BRANDS
# =============================================================================

def _list_named(model) -> list[dict]:
    rows = (
        db.session.query(model)
        .filter(model.is_active.is_(True))
        .order_by(model.name.asc())
        .all()
    )
    return [r.to_dict() for r in rows]


def _find_by_name(model, name: str):
    return db.session.query(model).filter(db.func.lower(model.name) == name.lower()).first()


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    if len(name) > 128:
        raise ValidationError("name exceeds max length 128")
    return name


def _create_named(model, *, name: str, description: str | None, label: str) -> dict:
    """
    Create a category or brand.

    A deleted row with the same name is brought back instead of clashing
    with the unique name constraint.
    """
    name = _clean_name(name)
    existing = _find_by_name(model, name)
    if existing is not None and existing.is_active:
        raise ConflictError(f"{label} already exists.")

    row = existing or model()
    row.name = name
    row.description = (description or "").strip() or None
    row.is_active = True
    if existing is None:
        db.session.add(row)
    db.session.commit()
    return row.to_dict()


def _get_named(model, row_id: int, label: str):
    row = db.session.get(model, row_id)
    if row is None or not row.is_active:
        raise NotFoundError(f"{label} not found")
    return row


def _update_named(model, row_id: int, payload: dict, label: str) -> dict:
    row = _get_named(model, row_id, label)
    if "name" in payload:
        name = _clean_name(payload["name"])
        other = _find_by_name(model, name)
        if other is not None and other.id != row.id:
            raise ConflictError(f"{label} already exists.")
        row.name = name
    if "description" in payload:
        row.description = (payload["description"] or "").strip() or None
    db.session.commit()
    return row.to_dict()


def _delete_named(model, row_id: int, label: str) -> None:
    """Soft-delete; products keep their reference and show the old name."""
    row = _get_named(model, row_id, label)
    row.is_active = False
    db.session.commit()


def list_categories() -> list[dict]:
    return _list_named(Category)


def create_category(*, name: str, description: str | None = None) -> dict:
    return _create_named(Category, name=name, description=description, label="Category")


def update_category(category_id: int, payload: dict) -> dict:
    return _update_named(Category, category_id, payload, "Category")


def delete_category(category_id: int) -> None:
    _delete_named(Category, category_id, "Category")


def list_brands() -> list[dict]:
    return _list_named(Brand)


def create_brand(*, name: str, description: str | None = None) -> dict:
    return _create_named(Brand, name=name, description=description, label="Brand")


def update_brand(brand_id: int, payload: dict) -> dict:
    return _update_named(Brand, brand_id, payload, "Brand")


def delete_brand(brand_id: int) -> None:
    _delete_named(Brand, brand_id, "Brand")

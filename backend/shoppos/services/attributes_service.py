# backend/shoppos/services/attributes_service.py
"""
Product attributes.

An Attribute defines a property; ProductAttribute rows hold one value per
product and attribute. Setting a product's attributes replaces the whole
set, so a value missing from the request is removed.

VALUE RULES:
- blank values are dropped, not stored
- number attributes must parse as a number
- select attributes must use one of the attribute's values
- every active required attribute must have a value
"""
from __future__ import annotations

from ..extensions import db
from ..models import Attribute, Product, ProductAttribute
from ..models.attributes import ATTRIBUTE_NUMBER, ATTRIBUTE_SELECT, ATTRIBUTE_TEXT, VALID_ATTRIBUTE_TYPES
from ..validation import ConflictError, NotFoundError, ValidationError, parse_int


def _clean_values(raw) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("values must be a list of strings")
    values: list[str] = []
    for item in raw:
        text = str(item).strip()
        if text and text not in values:
            values.append(text)
    return values


def _flag(payload: dict, key: str, current: bool) -> bool:
    if key not in payload:
        return current
    value = payload[key]
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false")
    return value


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Attribute.id).filter(db.func.lower(Attribute.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Attribute.id != exclude_id)
    return query.first() is not None


def _apply_attribute_payload(attribute: Attribute, payload: dict) -> None:
    if "name" in payload or attribute.name is None:
        name = (payload.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required")
        if len(name) > 128:
            raise ValidationError("name exceeds max length 128")
        if _name_taken(name, exclude_id=attribute.id):
            raise ConflictError("Attribute already exists.")
        attribute.name = name

    attribute_type = payload.get("type", attribute.attribute_type or ATTRIBUTE_TEXT)
    if attribute_type not in VALID_ATTRIBUTE_TYPES:
        raise ValidationError(f"type must be one of {list(VALID_ATTRIBUTE_TYPES)}")
    attribute.attribute_type = attribute_type

    if attribute_type == ATTRIBUTE_SELECT:
        values = _clean_values(payload["values"]) if "values" in payload else list(attribute.allowed_values or [])
        if not values:
            raise ValidationError("select attributes need at least one value")
        attribute.allowed_values = values
    else:
        attribute.allowed_values = None

    attribute.is_active = _flag(payload, "is_active", True if attribute.is_active is None else attribute.is_active)
    attribute.is_required = _flag(payload, "is_required", bool(attribute.is_required))


def list_attributes(search: str | None = None, active_only: bool = False) -> list[dict]:
    query = db.session.query(Attribute)
    if active_only:
        query = query.filter(Attribute.is_active.is_(True))
    if search:
        query = query.filter(Attribute.name.ilike(f"%{search.strip()}%"))
    return [a.to_dict() for a in query.order_by(Attribute.name.asc()).all()]


def get_attribute(attribute_id: int) -> Attribute:
    attribute = db.session.get(Attribute, attribute_id)
    if attribute is None:
        raise NotFoundError("Attribute not found")
    return attribute


def create_attribute(payload: dict) -> dict:
    """
    Raises:
        ValidationError: blank name, unknown type, select without values
        ConflictError: name already used (case-insensitive)
    """
    attribute = Attribute()
    _apply_attribute_payload(attribute, payload)
    db.session.add(attribute)
    db.session.commit()
    return attribute.to_dict()


def update_attribute(attribute_id: int, payload: dict) -> dict:
    attribute = get_attribute(attribute_id)
    _apply_attribute_payload(attribute, payload)
    db.session.commit()
    return attribute.to_dict()


def delete_attribute(attribute_id: int) -> None:
    """Deletes the attribute and its value on every product."""
    attribute = get_attribute(attribute_id)
    db.session.query(ProductAttribute).filter_by(attribute_id=attribute.id).delete(synchronize_session=False)
    db.session.delete(attribute)
    db.session.commit()


# =============================================================================
# PRODUCT VALUES
# =============================================================================

def _check_value(attribute: Attribute, value: str) -> None:
    if attribute.attribute_type == ATTRIBUTE_NUMBER:
        try:
            float(value)
        except ValueError:
            raise ValidationError(f"{attribute.name} must be a number")
    elif attribute.attribute_type == ATTRIBUTE_SELECT and value not in (attribute.allowed_values or []):
        raise ValidationError(f"{attribute.name} must be one of {attribute.allowed_values}")
    if len(value) > 255:
        raise ValidationError(f"{attribute.name} exceeds max length 255")


def get_product_attributes(product_id: int) -> list[dict]:
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    rows = (
        db.session.query(ProductAttribute)
        .join(Attribute, Attribute.id == ProductAttribute.attribute_id)
        .filter(ProductAttribute.product_id == product_id)
        .order_by(Attribute.name.asc())
        .all()
    )
    return [row.to_dict() for row in rows]


def set_product_attributes(product_id: int, values: dict) -> list[dict]:
    """
    Replace a product's attribute values.

    values maps attribute id (int or digit string) to a value.
    """
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    if not isinstance(values, dict):
        raise ValidationError("attributes must be an object of attribute_id: value")

    cleaned: dict[int, str] = {}
    for raw_id, raw_value in values.items():
        attribute_id = parse_int(raw_id, "attribute_id")
        value = "" if raw_value is None else str(raw_value).strip()
        if not value:
            continue
        attribute = db.session.get(Attribute, attribute_id)
        if attribute is None or not attribute.is_active:
            raise ValidationError(f"Attribute {attribute_id} not found")
        _check_value(attribute, value)
        cleaned[attribute_id] = value

    required = (
        db.session.query(Attribute)
        .filter(Attribute.is_active.is_(True), Attribute.is_required.is_(True))
        .all()
    )
    missing = sorted(a.name for a in required if a.id not in cleaned)
    if missing:
        raise ValidationError(f"Missing required attributes: {', '.join(missing)}")

    db.session.query(ProductAttribute).filter_by(product_id=product_id).delete(synchronize_session=False)
    db.session.add_all(
        ProductAttribute(product_id=product_id, attribute_id=attribute_id, value=value)
        for attribute_id, value in cleaned.items()
    )
    db.session.commit()
    return get_product_attributes(product_id)

# Overview: Supplier contact records.

from __future__ import annotations

from ..extensions import db
from ..models import Supplier
from ..validation import NotFoundError

SUPPLIER_MUTABLE_FIELDS = {"name", "contact_person", "email", "phone", "address", "notes", "is_active"}


def _apply(supplier: Supplier, patch: dict) -> None:
    for k, v in patch.items():
        if k in SUPPLIER_MUTABLE_FIELDS:
            setattr(supplier, k, v)


def list_suppliers(search: str | None = None, include_inactive: bool = True) -> list[dict]:
    """search matches name, contact person or phone."""
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Supplier.name.ilike(pattern),
            Supplier.contact_person.ilike(pattern),
            Supplier.phone.ilike(pattern),
        ))
    return [s.to_dict() for s in query.order_by(Supplier.name.asc(), Supplier.id.asc()).all()]


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found")
    return supplier


def create_supplier(*, patch: dict) -> dict:
    supplier = Supplier()
    _apply(supplier, patch)
    db.session.add(supplier)
    db.session.commit()
    return supplier.to_dict()


def update_supplier(*, supplier_id: int, patch: dict) -> dict:
    supplier = get_supplier(supplier_id)
    _apply(supplier, patch)
    db.session.commit()
    return supplier.to_dict()


def delete_supplier(*, supplier_id: int) -> None:
    db.session.delete(get_supplier(supplier_id))
    db.session.commit()

# Overview: Stock level changes for sales and manual adjustments.

"""
Inventory invariants (authoritative)

- products.stock_quantity is the single stored stock counter.
- Every write is a single UPDATE evaluated by the database against the
  current row, never a value computed from an earlier read. Two concurrent
  sales therefore cannot both sell the last unit.
- No write performed here leaves stock below zero.
- Each update bumps version_id so ORM updates holding an older copy of the
  row fail with StaleDataError instead of overwriting the new stock.
"""

from __future__ import annotations

from sqlalchemy import case, update

from ..extensions import db
from ..models import Product, InventoryAdjustment
from .concurrency import lock_for_update, run_with_retry


class InventoryError(Exception):
    """Raised for inventory operation errors."""
    pass


ADJUST_INCREASE = "increase"
ADJUST_DECREASE = "decrease"
VALID_ADJUSTMENT_TYPES = (ADJUST_INCREASE, ADJUST_DECREASE)


def _read_stock(product_id: int) -> int | None:
    return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


def decrement_stock(product_id: int, quantity: int, *, clamp: bool = False) -> int | None:
    """
    Remove quantity units of stock without committing.

    clamp=False: conditional update, only applied when at least quantity
        units are on hand. Returns None when the product is short.
    clamp=True: always applied, floored at zero.

    Returns the new stock level, or None when nothing was updated.
    """
    if quantity <= 0:
        raise InventoryError("quantity must be positive")

    stmt = update(Product).where(Product.id == product_id)
    if clamp:
        stmt = stmt.values(
            stock_quantity=case(
                (Product.stock_quantity > quantity, Product.stock_quantity - quantity),
                else_=0,
            ),
            version_id=Product.version_id + 1,
        )
    else:
        stmt = stmt.where(Product.stock_quantity >= quantity).values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
        )

    # Loaded Product objects keep the old stock until the next commit expires them
    result = db.session.execute(stmt.execution_options(synchronize_session=False))
    if result.rowcount == 0:
        return None
    return _read_stock(product_id)


def adjust_stock(
    *,
    product_id: int,
    adjustment_type: str,
    quantity: int,
    reason: str,
    notes: str | None = None,
    user_id: int | None = None,
) -> InventoryAdjustment:
    """
    Apply a manual stock correction and record it.

    The new level is max(0, stock +/- quantity): a decrease larger than the
    stock on hand empties the product rather than failing.
    """
    if adjustment_type not in VALID_ADJUSTMENT_TYPES:
        raise InventoryError(f"adjustment_type must be one of {list(VALID_ADJUSTMENT_TYPES)}")
    if quantity <= 0:
        raise InventoryError("quantity must be > 0")
    if not reason or not reason.strip():
        raise InventoryError("reason required")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if not product:
            raise InventoryError("Product not found")

        previous = product.stock_quantity
        if adjustment_type == ADJUST_INCREASE:
            new_stock = previous + quantity
        else:
            new_stock = max(0, previous - quantity)

        product.stock_quantity = new_stock

        adjustment = InventoryAdjustment(
            product_id=product.id,
            adjustment_type=adjustment_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new_stock,
            reason=reason.strip(),
            notes=notes.strip() if notes else None,
            created_by_user_id=user_id,
        )
        db.session.add(adjustment)
        db.session.commit()
        return adjustment

    return run_with_retry(_op)


def list_adjustments(limit: int = 50, product_id: int | None = None) -> list[InventoryAdjustment]:
    query = db.session.query(InventoryAdjustment)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    return query.order_by(InventoryAdjustment.id.desc()).limit(limit).all()


def low_stock_products(default_threshold: int) -> list[Product]:
    """Active products at or under their reorder level."""
    threshold = db.func.coalesce(Product.min_stock_level, default_threshold)
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock_quantity <= threshold)
        .order_by(Product.stock_quantity.asc(), Product.name.asc())
        .all()
    )

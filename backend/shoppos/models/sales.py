from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed register sale.

    WHY: A sale row is written only at checkout; there is no draft state.
    Header and lines are immutable once created.

    PAYMENT METHODS:
    - cash
    - mobile_wallet: wallet_phone is required
    - store_credit: sale on account, customer_id is required

    AMOUNTS: total_amount is the full cart total. credit_applied is the
    customer's existing store credit taken off it, so tender is measured
    against total_amount - credit_applied.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.UniqueConstraint("client_sale_id", name="uq_sales_client_sale_id"),
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable, time-derived number (e.g. "SALE-1767225600000")
    sale_number = db.Column(db.String(64), nullable=False)

    # Optional key supplied by the register; a repeated checkout with the
    # same key returns the stored sale instead of inserting a second one
    client_sale_id = db.Column(db.String(64), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # Amounts in the smallest currency unit
    total_amount = db.Column(db.Integer, nullable=False)
    credit_applied = db.Column(db.Integer, nullable=False, default=0)
    paid_amount = db.Column(db.Integer, nullable=False)
    change_amount = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=False, index=True)
    wallet_phone = db.Column(db.String(32), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "client_sale_id": self.client_sale_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "total_amount": self.total_amount,
            "credit_applied": self.credit_applied,
            "amount_due": self.total_amount - (self.credit_applied or 0),
            "paid_amount": self.paid_amount,
            "change_amount": self.change_amount,
            "payment_method": self.payment_method,
            "wallet_phone": self.wallet_phone,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class SaleLine(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    # Product cost price when the sale was made; profit reports use this
    unit_cost = db.Column(db.Integer, nullable=False, default=0)
    total_price = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "unit_cost": self.unit_cost,
            "total_price": self.total_price,
            "created_at": to_utc_z(self.created_at),
        }

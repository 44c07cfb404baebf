# Overview: SQLAlchemy-backed persistence handle used by the checkout service.

"""
Sale store

WHY: The checkout service never imports the database session directly.
It receives a store object exposing exactly the reads and writes a sale
needs, so tests can hand it a recording double instead.

Store contract (duck-typed):
- atomic(func): run func as one unit of work; commit on success, roll
  back everything on any exception
- get_customer(customer_id) -> Customer | None
- get_company_profile() -> CompanyProfile | None
- find_sale(client_sale_id) -> Sale | None
- insert_sale(**fields) -> Sale
- insert_sale_lines(sale_id, lines) -> list[SaleLine], each line carrying
  the product's cost price at the time of the sale
- decrement_stock(product_id, quantity, clamp) -> new stock | None
- get_store_credit(customer_id) -> current store credit balance
- append_credit_entry(**fields) -> CreditLedgerEntry
- product_catalog() / customer_directory(): fresh read models
"""

from __future__ import annotations

from ..extensions import db
from ..models import Customer, CompanyProfile, Product, Sale, SaleLine
from . import credit_service, inventory_service
from .concurrency import run_with_retry


class SqlSaleStore:
    """Sale store over the Flask-SQLAlchemy session."""

    def atomic(self, func):
        def _op():
            try:
                result = func()
                db.session.commit()
                return result
            except Exception:
                db.session.rollback()
                raise

        return run_with_retry(_op)

    def get_customer(self, customer_id: int) -> Customer | None:
        return db.session.get(Customer, customer_id)

    def get_company_profile(self) -> CompanyProfile | None:
        return db.session.query(CompanyProfile).order_by(CompanyProfile.id.asc()).first()

    def find_sale(self, client_sale_id: str) -> Sale | None:
        return db.session.query(Sale).filter_by(client_sale_id=client_sale_id).first()

    def insert_sale(self, **fields) -> Sale:
        sale = Sale(**fields)
        db.session.add(sale)
        db.session.flush()
        return sale

    def insert_sale_lines(self, sale_id: int, lines) -> list[SaleLine]:
        ids = [line.product_id for line in lines]
        costs = dict(db.session.query(Product.id, Product.cost_price).filter(Product.id.in_(ids)).all())
        rows = [
            SaleLine(
                sale_id=sale_id,
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                unit_cost=costs.get(line.product_id, 0),
                total_price=line.total,
            )
            for line in lines
        ]
        db.session.add_all(rows)
        db.session.flush()
        return rows

    def decrement_stock(self, product_id: int, quantity: int, clamp: bool) -> int | None:
        return inventory_service.decrement_stock(product_id, quantity, clamp=clamp)

    def get_store_credit(self, customer_id: int) -> int:
        return credit_service.get_customer_balance(customer_id).store_credit

    def append_credit_entry(self, **fields):
        return credit_service.append_entry(**fields)

    def product_catalog(self) -> list[dict]:
        products = (
            db.session.query(Product)
            .filter(Product.is_active.is_(True), Product.stock_quantity > 0)
            .order_by(Product.name.asc())
            .all()
        )
        return [p.to_dict() for p in products]

    def customer_directory(self) -> list[dict]:
        return credit_service.list_customer_balances()["items"]

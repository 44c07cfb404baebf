# Overview: Customer master data; balances come from the credit ledger.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, CreditLedgerEntry, Sale
from ..validation import ConflictError, NotFoundError
from .credit_service import get_customer_balance, list_customer_balances

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "email", "address"}


def _customer_with_balance(customer: Customer) -> dict:
    row = customer.to_dict()
    row.update(get_customer_balance(customer.id).to_dict())
    return row


def list_customers(search: str | None = None) -> list[dict]:
    return list_customer_balances(search)["items"]


def get_customer(customer_id: int) -> dict:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return _customer_with_balance(customer)


def create_customer(*, patch: dict) -> dict:
    customer = Customer()
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.add(customer)
    db.session.commit()
    return _customer_with_balance(customer)


def update_customer(*, customer_id: int, patch: dict) -> dict:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return _customer_with_balance(customer)


def delete_customer(*, customer_id: int) -> None:
    """
    Delete a customer with no history.

    Raises:
        NotFoundError: unknown customer
        ConflictError: the customer has sales or ledger entries
    """
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")

    has_sales = db.session.query(Sale.id).filter_by(customer_id=customer_id).first() is not None
    has_entries = db.session.query(CreditLedgerEntry.id).filter_by(customer_id=customer_id).first() is not None
    if has_sales or has_entries:
        raise ConflictError("Customer has sales or credit history and cannot be deleted")

    db.session.delete(customer)
    db.session.commit()

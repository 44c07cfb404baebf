# Overview: Customer credit/debt ledger posting and ledger-derived balances.

"""
Customer Credit Ledger

WHY: A single signed balance column was read as "store owes customer" by
the register and as "customer owes store" by the balances screen. Two
explicit views derived from the append-only ledger remove the ambiguity.

BALANCE VIEWS (folded over entries in id order):
- store_credit: credit adds, credit_used subtracts, floored at 0
- debt: debit adds, repayment subtracts, floored at 0

A repayment larger than the outstanding debt floors debt at zero and does
NOT turn the excess into store credit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..extensions import db
from ..models import Customer, CreditLedgerEntry


class CreditError(Exception):
    """Raised for credit ledger operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


ENTRY_CREDIT = "credit"
ENTRY_CREDIT_USED = "credit_used"
ENTRY_DEBIT = "debit"
ENTRY_REPAYMENT = "repayment"

VALID_ENTRY_TYPES = (ENTRY_CREDIT, ENTRY_CREDIT_USED, ENTRY_DEBIT, ENTRY_REPAYMENT)

# Types an operator may post by hand from the balances screen
MANUAL_ENTRY_TYPES = (ENTRY_REPAYMENT, ENTRY_DEBIT, ENTRY_CREDIT)


@dataclass(frozen=True)
class CustomerBalance:
    customer_id: int
    store_credit: int = 0
    debt: int = 0

    @property
    def net(self) -> int:
        """Positive when the business owes the customer."""
        return self.store_credit - self.debt

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "store_credit": self.store_credit,
            "debt": self.debt,
            "net": self.net,
        }


def apply_entry(balance: CustomerBalance, entry_type: str, amount: int) -> CustomerBalance:
    """Pure balance transition for one ledger entry."""
    store_credit, debt = balance.store_credit, balance.debt
    if entry_type == ENTRY_CREDIT:
        store_credit += amount
    elif entry_type == ENTRY_CREDIT_USED:
        store_credit = max(0, store_credit - amount)
    elif entry_type == ENTRY_DEBIT:
        debt += amount
    elif entry_type == ENTRY_REPAYMENT:
        debt = max(0, debt - amount)
    else:
        raise CreditError(f"Unknown ledger entry type: {entry_type}")
    return CustomerBalance(balance.customer_id, store_credit, debt)


def fold_entries(customer_id: int, entries: Iterable) -> CustomerBalance:
    balance = CustomerBalance(customer_id)
    for entry in entries:
        balance = apply_entry(balance, entry.entry_type, entry.amount)
    return balance


def get_customer_balance(customer_id: int) -> CustomerBalance:
    entries = (
        db.session.query(CreditLedgerEntry)
        .filter_by(customer_id=customer_id)
        .order_by(CreditLedgerEntry.id.asc())
        .all()
    )
    return fold_entries(customer_id, entries)


def get_balances(customer_ids: Iterable[int] | None = None) -> dict[int, CustomerBalance]:
    """Balances for many customers from a single ledger scan."""
    query = db.session.query(CreditLedgerEntry).order_by(CreditLedgerEntry.id.asc())
    ids = None
    if customer_ids is not None:
        ids = set(customer_ids)
        if not ids:
            return {}
        query = query.filter(CreditLedgerEntry.customer_id.in_(ids))

    grouped: dict[int, list[CreditLedgerEntry]] = {}
    for entry in query.all():
        grouped.setdefault(entry.customer_id, []).append(entry)

    balances = {cid: fold_entries(cid, rows) for cid, rows in grouped.items()}
    for cid in ids or ():
        balances.setdefault(cid, CustomerBalance(cid))
    return balances


def append_entry(
    *,
    customer_id: int,
    entry_type: str,
    amount: int,
    description: str,
    sale_id: int | None = None,
    user_id: int | None = None,
) -> CreditLedgerEntry:
    """
    Append one ledger row without committing.

    Callers own the transaction; the checkout writes its entries inside the
    same transaction as the sale they describe.
    """
    if entry_type not in VALID_ENTRY_TYPES:
        raise CreditError(f"Invalid entry type: {entry_type}. Must be one of {list(VALID_ENTRY_TYPES)}")
    if amount <= 0:
        raise CreditError("Amount must be positive")

    entry = CreditLedgerEntry(
        customer_id=customer_id,
        entry_type=entry_type,
        amount=amount,
        description=description,
        sale_id=sale_id,
        created_by_user_id=user_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def post_customer_transaction(
    *,
    customer_id: int,
    entry_type: str,
    amount: int,
    description: str,
    user_id: int | None = None,
) -> tuple[CreditLedgerEntry, CustomerBalance]:
    """
    Record a manual repayment, debt increase or credit grant.

    Returns the new entry and the customer's balance after it.

    Raises:
        CreditError: customer missing, invalid type, non-positive amount,
            or blank description
    """
    if entry_type not in MANUAL_ENTRY_TYPES:
        raise CreditError(f"Invalid transaction type: {entry_type}. Must be one of {list(MANUAL_ENTRY_TYPES)}")
    if not description or not description.strip():
        raise CreditError("description required")

    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise CreditError("Customer not found")

    entry = append_entry(
        customer_id=customer_id,
        entry_type=entry_type,
        amount=amount,
        description=description.strip(),
        user_id=user_id,
    )
    db.session.commit()
    return entry, get_customer_balance(customer_id)


def list_transactions(limit: int = 100, customer_id: int | None = None) -> list[CreditLedgerEntry]:
    query = db.session.query(CreditLedgerEntry)
    if customer_id is not None:
        query = query.filter_by(customer_id=customer_id)
    return query.order_by(CreditLedgerEntry.id.desc()).limit(limit).all()


def list_customer_balances(search: str | None = None) -> dict:
    """
    Customers with both balance views, plus totals for the summary cards.
    """
    query = db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc())
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
    customers = query.all()

    balances = get_balances(c.id for c in customers)
    items = []
    for customer in customers:
        row = customer.to_dict()
        row.update(balances[customer.id].to_dict())
        items.append(row)

    return {
        "items": items,
        "count": len(items),
        "total_store_credit": sum(b.store_credit for b in balances.values()),
        "total_debt": sum(b.debt for b in balances.values()),
    }

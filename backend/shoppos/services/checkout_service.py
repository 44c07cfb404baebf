# Overview: Register checkout - turns a cart and payment input into a stored sale.

"""
Checkout Service

WHY: Completing a sale touches four tables (sales, sale_items, products,
customer_credits). They are written in a fixed order inside one unit of
work on the injected store, so a failure at any step leaves none of them
behind.

COMMIT ORDER:
1. sale number from the clock (SALE-<epoch millis>)
2. sale header
3. sale lines, priced from the cart lines (no fresh price lookup)
4. stock decrements, one conditional update per line
5. ledger: existing store credit applied to the sale, change kept as
   store credit (customer attached only), and the unpaid part of a
   store-credit sale as debt
6. receipt from the header and the pre-commit cart snapshot
7. session reset and fresh product/customer read models

Every precondition is checked before anything is written. The only reads
before the unit of work are the customer and their store credit balance.

STORE CREDIT: an attached customer's store credit is applied first, up to
the sale total. Tender is then checked against the amount due
(total - credit_applied), and change and debt are computed from it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..time_utils import epoch_millis, utcnow
from .cart_service import (
    CheckoutSession,
    PAYMENT_MOBILE_WALLET,
    PAYMENT_STORE_CREDIT,
    VALID_PAYMENT_METHODS,
    compute_change,
    compute_credit_applied,
    compute_shortfall,
)
from .credit_service import ENTRY_CREDIT, ENTRY_CREDIT_USED, ENTRY_DEBIT
from .receipt_service import items_from_cart, items_from_sale_lines, render_receipt


class CheckoutError(Exception):
    """Raised when a checkout cannot be completed."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CheckoutValidationError(CheckoutError):
    """Input problem found before any write; the operator can fix and retry."""


class CheckoutPermissionError(CheckoutError):
    """The actor may not complete sales."""


class InsufficientStockError(CheckoutError):
    """A conditional stock update found less stock than the cart line needs."""


class StoreCreditChangedError(CheckoutError):
    """The customer's store credit dropped below the amount applied to the sale."""


STOCK_POLICY_REJECT = "reject"
STOCK_POLICY_CLAMP = "clamp"
VALID_STOCK_POLICIES = (STOCK_POLICY_REJECT, STOCK_POLICY_CLAMP)


@dataclass(frozen=True)
class Actor:
    """Who is checking out. Only the elevated role may complete a sale."""
    user_id: int
    role: str

    @property
    def is_elevated(self) -> bool:
        return (self.role or "").strip().lower() == "admin"

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)


@dataclass(frozen=True)
class CheckoutTotals:
    total: int
    paid: int
    change: int
    shortfall: int
    credit_applied: int = 0

    @property
    def amount_due(self) -> int:
        return self.total - self.credit_applied


@dataclass
class CheckoutResult:
    sale: dict
    lines: list[dict]
    receipt_html: str
    products: list[dict] = field(default_factory=list)
    customers: list[dict] = field(default_factory=list)
    # True when a stored sale was returned for a repeated client_sale_id
    replayed: bool = False

    def to_dict(self) -> dict:
        return {
            "sale": self.sale,
            "lines": self.lines,
            "receipt_html": self.receipt_html,
            "products": self.products,
            "customers": self.customers,
            "replayed": self.replayed,
        }


def generate_sale_number(now: datetime) -> str:
    return f"SALE-{epoch_millis(now)}"


def validate_checkout(session: CheckoutSession, actor: Actor, available_credit: int = 0) -> CheckoutTotals:
    """
    Check every precondition without touching storage.

    available_credit is the attached customer's store credit; it is ignored
    when no customer is attached.

    Raises:
        CheckoutPermissionError: actor lacks the elevated role
        CheckoutValidationError: empty cart, bad payment input
    """
    if not actor.is_elevated:
        raise CheckoutPermissionError("Only administrators can complete sales")

    if session.cart.is_empty():
        raise CheckoutValidationError("Cart is empty")

    method = session.payment_method
    if method not in VALID_PAYMENT_METHODS:
        raise CheckoutValidationError(
            f"Invalid payment method: {method}. Must be one of {list(VALID_PAYMENT_METHODS)}"
        )

    total = session.cart.total()
    paid = session.paid_amount if session.paid_amount is not None else 0
    credit_applied = 0
    if session.customer_id is not None:
        credit_applied = compute_credit_applied(total, available_credit)
    due = total - credit_applied

    if method == PAYMENT_MOBILE_WALLET and not (session.wallet_phone or "").strip():
        raise CheckoutValidationError("Wallet phone number required for mobile wallet payments")

    if method == PAYMENT_STORE_CREDIT and session.customer_id is None:
        raise CheckoutValidationError("Select a customer for store credit sales")

    if paid < 0:
        raise CheckoutValidationError("paid_amount must be >= 0")

    if method == PAYMENT_STORE_CREDIT:
        if paid > due:
            raise CheckoutValidationError("Paid amount cannot exceed the amount due on a store credit sale")
    elif paid < due:
        raise CheckoutValidationError(
            "Paid amount is less than the amount due",
            details={"total": total, "credit_applied": credit_applied, "amount_due": due, "paid_amount": paid},
        )

    return CheckoutTotals(
        total=total,
        paid=paid,
        change=compute_change(due, paid),
        shortfall=compute_shortfall(due, paid) if method == PAYMENT_STORE_CREDIT else 0,
        credit_applied=credit_applied,
    )


class CheckoutService:
    """
    Commit sequence over an injected store.

    Args:
        store: object implementing the sale store contract (see sale_store.py)
        stock_policy: "reject" refuses a sale when any line is short;
            "clamp" floors stock at zero instead
        clock: returns the current UTC-naive datetime
    """

    def __init__(
        self,
        store,
        *,
        stock_policy: str = STOCK_POLICY_REJECT,
        clock: Callable[[], datetime] = utcnow,
        currency_code: str = "MMK",
        currency_decimals: int = 0,
    ):
        if stock_policy not in VALID_STOCK_POLICIES:
            raise ValueError(f"stock_policy must be one of {list(VALID_STOCK_POLICIES)}")
        self.store = store
        self.stock_policy = stock_policy
        self.clock = clock
        self.currency_code = currency_code
        self.currency_decimals = currency_decimals

    @classmethod
    def from_app_config(cls, store) -> "CheckoutService":
        config = current_app.config
        return cls(
            store,
            stock_policy=config.get("CHECKOUT_STOCK_POLICY", STOCK_POLICY_REJECT),
            currency_code=config.get("CURRENCY_CODE", "MMK"),
            currency_decimals=config.get("CURRENCY_DECIMALS", 0),
        )

    def _replay(self, sale, session: CheckoutSession) -> CheckoutResult:
        """Result for a sale already stored under the same client_sale_id."""
        current_app.logger.info("Checkout replayed for %s (sale %s)", sale.client_sale_id, sale.sale_number)
        receipt_html = render_receipt(
            sale,
            items_from_sale_lines(sale.lines),
            company=self.store.get_company_profile(),
            customer=sale.customer,
            currency_code=self.currency_code,
            currency_decimals=self.currency_decimals,
        )
        session.reset()
        return CheckoutResult(
            sale=sale.to_dict(),
            lines=[line.to_dict() for line in sale.lines],
            receipt_html=receipt_html,
            products=self.store.product_catalog(),
            customers=self.store.customer_directory(),
            replayed=True,
        )

    def checkout(
        self,
        session: CheckoutSession,
        actor: Actor,
        *,
        client_sale_id: str | None = None,
    ) -> CheckoutResult:
        """
        Commit the session's cart as a sale.

        client_sale_id makes the call idempotent: when a sale with that key
        already exists it is returned unchanged and nothing is written.
        """
        client_sale_id = (client_sale_id or "").strip() or None
        if client_sale_id and actor.is_elevated:
            existing = self.store.find_sale(client_sale_id)
            if existing is not None:
                return self._replay(existing, session)

        customer = None
        available_credit = 0
        if actor.is_elevated and session.customer_id is not None:
            customer = self.store.get_customer(session.customer_id)
            if customer is None:
                raise CheckoutValidationError("Customer not found")
            available_credit = self.store.get_store_credit(customer.id)

        totals = validate_checkout(session, actor, available_credit)

        snapshot = session.cart.snapshot()
        now = self.clock()
        sale_number = generate_sale_number(now)
        wallet_phone = (session.wallet_phone or "").strip() or None
        if session.payment_method != PAYMENT_MOBILE_WALLET:
            wallet_phone = None

        def _commit():
            sale = self.store.insert_sale(
                sale_number=sale_number,
                client_sale_id=client_sale_id,
                customer_id=session.customer_id,
                total_amount=totals.total,
                credit_applied=totals.credit_applied,
                paid_amount=totals.paid,
                change_amount=totals.change,
                payment_method=session.payment_method,
                wallet_phone=wallet_phone,
                created_by_user_id=actor.user_id,
                created_at=now,
            )

            sale_lines = self.store.insert_sale_lines(sale.id, snapshot)

            short = []
            clamp = self.stock_policy == STOCK_POLICY_CLAMP
            for line in snapshot:
                new_stock = self.store.decrement_stock(line.product_id, line.quantity, clamp)
                if new_stock is None:
                    short.append({
                        "product_id": line.product_id,
                        "name": line.product.name,
                        "requested_quantity": line.quantity,
                    })
            if short:
                raise InsufficientStockError("Insufficient stock to complete sale", details={"items": short})

            if totals.credit_applied > 0:
                # Another register may have spent the same credit since it was read
                balance = self.store.get_store_credit(customer.id)
                if balance < totals.credit_applied:
                    raise StoreCreditChangedError(
                        "Store credit balance changed; review the sale and retry",
                        details={"credit_applied": totals.credit_applied, "store_credit": balance},
                    )
                self.store.append_credit_entry(
                    customer_id=customer.id,
                    entry_type=ENTRY_CREDIT_USED,
                    amount=totals.credit_applied,
                    description=f"Credit applied to sale {sale_number}",
                    sale_id=sale.id,
                    user_id=actor.user_id,
                )

            if customer is not None and totals.change > 0:
                self.store.append_credit_entry(
                    customer_id=customer.id,
                    entry_type=ENTRY_CREDIT,
                    amount=totals.change,
                    description=f"Overpayment/change from sale {sale_number}",
                    sale_id=sale.id,
                    user_id=actor.user_id,
                )

            if customer is not None and totals.shortfall > 0:
                self.store.append_credit_entry(
                    customer_id=customer.id,
                    entry_type=ENTRY_DEBIT,
                    amount=totals.shortfall,
                    description=f"Debt from sale {sale_number}",
                    sale_id=sale.id,
                    user_id=actor.user_id,
                )

            return sale.to_dict(), [line.to_dict() for line in sale_lines]

        try:
            sale, lines = self.store.atomic(_commit)
        except InsufficientStockError as exc:
            current_app.logger.warning("Checkout rejected for short stock: %s", exc.details)
            raise
        except StoreCreditChangedError as exc:
            current_app.logger.warning("Checkout rejected, store credit changed: %s", exc.details)
            raise
        except IntegrityError as exc:
            # A concurrent request with the same key committed first
            existing = self.store.find_sale(client_sale_id) if client_sale_id else None
            if existing is None:
                raise CheckoutError("Checkout failed", details={"sale_number": sale_number}) from exc
            return self._replay(existing, session)
        except SQLAlchemyError as exc:
            raise CheckoutError("Checkout failed", details={"sale_number": sale_number}) from exc

        current_app.logger.info(
            "Sale %s committed: total=%s credit_applied=%s paid=%s change=%s method=%s customer=%s",
            sale_number, totals.total, totals.credit_applied, totals.paid, totals.change,
            session.payment_method, session.customer_id,
        )

        company = self.store.get_company_profile()
        receipt_html = render_receipt(
            sale,
            items_from_cart(snapshot),
            company=company,
            customer=customer,
            currency_code=self.currency_code,
            currency_decimals=self.currency_decimals,
        )

        session.reset()

        return CheckoutResult(
            sale=sale,
            lines=lines,
            receipt_html=receipt_html,
            products=self.store.product_catalog(),
            customers=self.store.customer_directory(),
        )

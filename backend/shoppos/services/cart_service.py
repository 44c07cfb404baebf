# Overview: In-memory cart and per-operator checkout session state.

"""
Register cart state

WHY: The cart belongs to exactly one operator at one register. Nothing is
persisted until checkout, so the cart is a plain in-memory container and
the checkout service turns a snapshot of it into database rows.

CART INVARIANTS:
- One line per product id, kept in insertion order.
- line.total == line.quantity * line.unit_price after every operation.
- add_item never pushes a line past the product's stock as last fetched;
  adding a product already at full stock is a silent no-op.
- set_quantity(p, 0) removes the line; it does not clamp to stock.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator

from flask import current_app


PAYMENT_CASH = "cash"
PAYMENT_MOBILE_WALLET = "mobile_wallet"
PAYMENT_STORE_CREDIT = "store_credit"

VALID_PAYMENT_METHODS = (
    PAYMENT_CASH,
    PAYMENT_MOBILE_WALLET,
    PAYMENT_STORE_CREDIT,
)


# =============================================================================
# PRICING HELPERS
# =============================================================================

def line_total(quantity: int, unit_price: int) -> int:
    return quantity * unit_price


def cart_total(lines: Iterable["CartLine"]) -> int:
    return sum(line.total for line in lines)


def compute_change(total: int, tendered: int) -> int:
    """Change due back to the customer; never negative."""
    return max(0, tendered - total)


def compute_shortfall(total: int, tendered: int) -> int:
    """Unpaid part of a sale; never negative."""
    return max(0, total - tendered)


def compute_credit_applied(total: int, available_credit: int) -> int:
    """Store credit taken off a sale: all of it, up to the sale total."""
    return min(total, max(0, available_credit))


# =============================================================================
# CART
# =============================================================================

@dataclass(frozen=True)
class ProductSnapshot:
    """The product fields a cart needs, as read when the product was added."""
    id: int
    name: str
    sku: str
    selling_price: int
    stock_quantity: int

    @classmethod
    def from_model(cls, product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            sku=product.sku,
            selling_price=product.selling_price,
            stock_quantity=product.stock_quantity,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "selling_price": self.selling_price,
            "stock_quantity": self.stock_quantity,
        }


@dataclass(frozen=True)
class CartLine:
    product: ProductSnapshot
    quantity: int
    unit_price: int
    total: int

    @property
    def product_id(self) -> int:
        return self.product.id

    def to_dict(self) -> dict:
        return {
            "product": self.product.to_dict(),
            "product_id": self.product.id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total": self.total,
        }


class Cart:
    """Ordered collection of cart lines keyed by product id."""

    def __init__(self, lines: Iterable[CartLine] = ()):
        self._lines: dict[int, CartLine] = {}
        for line in lines:
            self._lines[line.product_id] = line

    def __iter__(self) -> Iterator[CartLine]:
        return iter(list(self._lines.values()))

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id: int) -> CartLine | None:
        return self._lines.get(product_id)

    def add_item(self, product) -> CartLine | None:
        """
        Add one unit of product.

        product may be a Product model or a ProductSnapshot. Returns the
        resulting line, or None when the add was ignored because the
        product has no more stock to sell.
        """
        snapshot = product if isinstance(product, ProductSnapshot) else ProductSnapshot.from_model(product)
        existing = self._lines.get(snapshot.id)

        if existing is None:
            if snapshot.stock_quantity <= 0:
                return None
            line = CartLine(
                product=snapshot,
                quantity=1,
                unit_price=snapshot.selling_price,
                total=line_total(1, snapshot.selling_price),
            )
            self._lines[snapshot.id] = line
            return line

        if existing.quantity >= snapshot.stock_quantity:
            return None

        quantity = existing.quantity + 1
        line = CartLine(
            product=snapshot,
            quantity=quantity,
            unit_price=snapshot.selling_price,
            total=line_total(quantity, snapshot.selling_price),
        )
        self._lines[snapshot.id] = line
        return line

    def set_quantity(self, product_id: int, quantity: int) -> CartLine | None:
        """Replace a line's quantity; zero or less removes the line."""
        existing = self._lines.get(product_id)
        if existing is None:
            return None
        if quantity <= 0:
            self.remove_item(product_id)
            return None
        line = replace(existing, quantity=quantity, total=line_total(quantity, existing.unit_price))
        self._lines[product_id] = line
        return line

    def remove_item(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def total(self) -> int:
        return cart_total(self._lines.values())

    def clear(self) -> None:
        self._lines.clear()

    def snapshot(self) -> tuple[CartLine, ...]:
        # Lines are frozen, so a tuple of them is an independent copy
        return tuple(self._lines.values())

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines.values()],
            "item_count": sum(line.quantity for line in self._lines.values()),
            "total": self.total(),
        }


# =============================================================================
# CHECKOUT SESSION
# =============================================================================

@dataclass
class CheckoutSession:
    """
    Everything the register screen holds between checkouts.

    paid_amount is None until the operator enters a tendered amount.
    """
    user_id: int
    cart: Cart = field(default_factory=Cart)
    customer_id: int | None = None
    payment_method: str = PAYMENT_CASH
    paid_amount: int | None = None
    wallet_phone: str | None = None

    def reset(self) -> None:
        self.cart.clear()
        self.customer_id = None
        self.payment_method = PAYMENT_CASH
        self.paid_amount = None
        self.wallet_phone = None

    def to_dict(self, available_credit: int = 0) -> dict:
        """available_credit is the attached customer's store credit balance."""
        total = self.cart.total()
        tendered = self.paid_amount or 0
        credit_applied = compute_credit_applied(total, available_credit) if self.customer_id is not None else 0
        amount_due = total - credit_applied
        return {
            "user_id": self.user_id,
            "cart": self.cart.to_dict(),
            "customer_id": self.customer_id,
            "payment_method": self.payment_method,
            "paid_amount": self.paid_amount,
            "wallet_phone": self.wallet_phone,
            "credit_applied": credit_applied,
            "amount_due": amount_due,
            "change_amount": compute_change(amount_due, tendered),
        }


class CheckoutSessionRegistry:
    """Process-local map of user id -> CheckoutSession."""

    def __init__(self):
        self._sessions: dict[int, CheckoutSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> CheckoutSession:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                session = CheckoutSession(user_id=user_id)
                self._sessions[user_id] = session
            return session

    def discard(self, user_id: int) -> None:
        with self._lock:
            self._sessions.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


REGISTRY_EXTENSION_KEY = "shoppos.checkout_sessions"


def get_session_registry() -> CheckoutSessionRegistry:
    """Registry bound to the current Flask app (created in create_app)."""
    return current_app.extensions[REGISTRY_EXTENSION_KEY]

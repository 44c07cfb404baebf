# Overview: Printable receipt markup for committed sales.

"""
Receipt rendering

render_receipt is a pure function of its arguments: it reads no database
rows, touches no session state and needs no Flask app context. Optional
fields (customer, company address/phone/email/tax number/logo/website,
wallet phone, change) drop their rows entirely when absent.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from jinja2 import Environment, PackageLoader, select_autoescape

from ..time_utils import parse_iso_datetime
from .cart_service import PAYMENT_CASH, PAYMENT_MOBILE_WALLET, PAYMENT_STORE_CREDIT


PAYMENT_LABELS = {
    PAYMENT_CASH: "CASH",
    PAYMENT_MOBILE_WALLET: "MOBILE WALLET",
    PAYMENT_STORE_CREDIT: "STORE CREDIT",
}


def format_money(value: int | None, decimals: int = 0) -> str:
    """12000 -> '12,000'; with decimals=2, 123456 -> '1,234.56'."""
    value = value or 0
    if decimals <= 0:
        return f"{value:,}"
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10 ** decimals)
    return f"{sign}{whole:,}.{frac:0{decimals}d}"


def _format_datetime(value: Any) -> str:
    if isinstance(value, str):
        value = parse_iso_datetime(value)
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return ""


_env = Environment(
    loader=PackageLoader("shoppos", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["receipt_datetime"] = _format_datetime
_env.filters["money"] = format_money


def receipt_item(name: str, quantity: int, unit_price: int, total: int) -> dict:
    return {"name": name, "quantity": quantity, "unit_price": unit_price, "total": total}


def items_from_cart(lines: Iterable) -> list[dict]:
    """Receipt rows from cart lines (the pre-commit snapshot)."""
    return [receipt_item(line.product.name, line.quantity, line.unit_price, line.total) for line in lines]


def items_from_sale_lines(lines: Iterable) -> list[dict]:
    """Receipt rows from stored SaleLine rows, for reprints."""
    return [
        receipt_item(line.product.name if line.product else f"#{line.product_id}",
                     line.quantity, line.unit_price, line.total_price)
        for line in lines
    ]


def render_receipt(
    sale: Any,
    items: list[Mapping],
    company: Any = None,
    customer: Any = None,
    *,
    currency_code: str = "MMK",
    currency_decimals: int = 0,
) -> str:
    """
    Render receipt HTML.

    sale and company may be model instances or dicts; items are dicts as
    built by items_from_cart / items_from_sale_lines.
    """
    template = _env.get_template("receipt.html")
    method = sale["payment_method"] if isinstance(sale, Mapping) else sale.payment_method
    return template.render(
        sale=sale,
        items=items,
        company=company or {},
        customer=customer,
        subtotal=sum(item["total"] for item in items),
        currency=currency_code,
        payment_label=PAYMENT_LABELS.get(method, str(method).upper()),
        decimals=currency_decimals,
    )

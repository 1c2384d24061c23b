"""Денежные расчеты заказа.

Все суммы хранятся как Decimal с точностью до цента.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from shop_orders.domain.exceptions import ValidationError

CENT = Decimal("0.01")
TAX_RATE = Decimal("0.10")
DEFAULT_SHIPPING_COST = Decimal("10.00")


def to_money(value) -> Decimal:
    """Приводит число к Decimal через str, чтобы не тянуть погрешность float"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_item_subtotal(unit_price, quantity: int) -> Decimal:
    if quantity is None or quantity <= 0:
        raise ValidationError("Item quantity must be positive")
    price = to_money(unit_price)
    if price < 0:
        raise ValidationError("Item unit price cannot be negative")
    return round2(price * quantity)


def compute_subtotal(items: Iterable) -> Decimal:
    """Сумма unit_price * quantity по всем позициям"""
    subtotal = Decimal("0")
    for item in items:
        subtotal += compute_item_subtotal(item.unit_price, item.quantity)
    return round2(subtotal)


def compute_tax(subtotal) -> Decimal:
    return round2(to_money(subtotal) * TAX_RATE)


def default_shipping_cost() -> Decimal:
    return DEFAULT_SHIPPING_COST


def compute_total(subtotal, tax, shipping, discount=None) -> Decimal:
    discount = to_money(discount) if discount is not None else Decimal("0")
    return round2(to_money(subtotal) + to_money(tax) + to_money(shipping) - discount)

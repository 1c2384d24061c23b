import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from shop_orders.domain import money

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{4}-\d+$")


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


TERMINAL_STATUSES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class OrderItem(BaseModel):
    """Value Object — позиция заказа"""
    product_id: str
    product_name: str
    product_sku: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


class ShippingAddress(BaseModel):
    """Value Object — адрес доставки"""
    street: str
    city: str
    state: str
    postal_code: str
    country: str


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: str
    order_number: str
    user_id: str
    items: list[OrderItem]
    shipping_address: ShippingAddress
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_code: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    tracking_number: Optional[str] = None
    version: int = 1
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def can_be_confirmed(self) -> bool:
        """Бизнес-правило: подтвердить можно только PENDING"""
        return self.status == OrderStatus.PENDING

    def can_be_shipped(self) -> bool:
        """Бизнес-правило: отправить можно только CONFIRMED"""
        return self.status == OrderStatus.CONFIRMED

    def can_be_delivered(self) -> bool:
        return self.status == OrderStatus.SHIPPED

    def can_be_cancelled(self) -> bool:
        """Бизнес-правило: отменить можно только PENDING или CONFIRMED"""
        return self.status in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_fulfilled(self) -> bool:
        return self.status == OrderStatus.DELIVERED

    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID

    def total_items_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def calculate_subtotal(self) -> Decimal:
        return money.compute_subtotal(self.items)

    def calculate_total(self) -> Decimal:
        """Пересчет итога из текущих полей (скидка по умолчанию 0)"""
        return money.compute_total(
            self.subtotal, self.tax_amount, self.shipping_cost, self.discount_amount
        )


class OrderStats(BaseModel):
    status: OrderStatus
    count: int


def generate_order_number(year: int, sequence: int) -> str:
    return f"ORD-{year}-{sequence:03d}"

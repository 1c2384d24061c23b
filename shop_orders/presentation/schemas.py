from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional

from shop_orders.domain.models import OrderStatus, PaymentStatus, ShippingAddress
from shop_orders.application.create_order import OrderItemDTO


class CreateOrderRequest(BaseModel):
    user_id: str
    items: list[OrderItemDTO]
    shipping_address: ShippingAddress


class PaymentRequest(BaseModel):
    payment_reference: Optional[str] = None


class ShipOrderRequest(BaseModel):
    tracking_number: str


class ApplyDiscountRequest(BaseModel):
    code: str
    amount: Decimal


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    product_sku: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


class OrderResponse(BaseModel):
    id: str
    order_number: str
    user_id: str
    items: list[OrderItemResponse]
    shipping_address: ShippingAddress
    subtotal: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    discount_code: Optional[str] = None
    discount_amount: Optional[Decimal] = None
    total: Decimal
    total_items: int
    status: OrderStatus
    payment_status: PaymentStatus
    tracking_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            items=[OrderItemResponse(**item.model_dump()) for item in order.items],
            shipping_address=order.shipping_address,
            subtotal=order.subtotal,
            tax_amount=order.tax_amount,
            shipping_cost=order.shipping_cost,
            discount_code=order.discount_code,
            discount_amount=order.discount_amount,
            total=order.total,
            total_items=order.total_items_count(),
            status=order.status,
            payment_status=order.payment_status,
            tracking_number=order.tracking_number,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at
        )


class OrderTotalResponse(BaseModel):
    order_id: str
    total: Decimal


class RevenueResponse(BaseModel):
    total_revenue: Decimal


class ErrorResponse(BaseModel):
    detail: str

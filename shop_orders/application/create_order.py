import logging
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel
from datetime import datetime, timezone
import uuid

from shop_orders.domain import money
from shop_orders.domain.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, ShippingAddress, generate_order_number
)
from shop_orders.domain.exceptions import ValidationError
from shop_orders.application.interfaces import NotificationsService
from shop_orders.application.notifications import notify_user


logger = logging.getLogger(__name__)


class OrderItemDTO(BaseModel):
    product_id: str
    product_name: str
    product_sku: str
    unit_price: Decimal
    quantity: int
    # Присланный клиентом subtotal не используется, пересчитываем сами
    subtotal: Optional[Decimal] = None


class CreateOrderDTO(BaseModel):
    user_id: str
    items: list[OrderItemDTO]
    shipping_address: ShippingAddress


class CreateOrderUseCase:
    def __init__(self, unit_of_work, notifications_service: Optional[NotificationsService] = None):
        self._uow = unit_of_work
        self._notifications = notifications_service

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(f"Создание заказа для пользователя {order_data.user_id}")

        # 1. Валидация до любых обращений к БД
        if not order_data.items:
            raise ValidationError("Order must contain at least one item")
        items = [
            OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                product_sku=item.product_sku,
                unit_price=money.round2(item.unit_price),
                quantity=item.quantity,
                subtotal=money.compute_item_subtotal(item.unit_price, item.quantity)
            )
            for item in order_data.items
        ]

        # 2. Расчет сумм
        subtotal = money.compute_subtotal(items)
        tax_amount = money.compute_tax(subtotal)
        shipping_cost = money.default_shipping_cost()
        total = money.compute_total(subtotal, tax_amount, shipping_cost)

        # 3. Создание заказа
        now = datetime.now(timezone.utc)
        async with self._uow() as uow:
            sequence = await uow.orders.next_order_sequence(now.year)
            order = Order(
                id=str(uuid.uuid4()),
                order_number=generate_order_number(now.year, sequence),
                user_id=order_data.user_id,
                items=items,
                shipping_address=order_data.shipping_address,
                subtotal=subtotal,
                tax_amount=tax_amount,
                shipping_cost=shipping_cost,
                total=total,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now
            )
            created = await uow.orders.create(order)
            await uow.commit()
        logger.info(f"Заказ создан: {created.id} ({created.order_number}), итого {created.total}")

        await notify_user(
            self._notifications,
            created,
            message=f"Ваш заказ {created.order_number} создан (PENDING) на сумму {created.total}",
            event="order_created"
        )
        return created

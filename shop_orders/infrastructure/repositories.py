import logging
from collections import defaultdict
from decimal import Decimal
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shop_orders.domain import money
from shop_orders.domain.models import (
    Order, OrderItem, OrderStatus, OrderStats, PaymentStatus, ShippingAddress
)
from shop_orders.domain.exceptions import ConflictError, OrderNotFoundError, ValidationError
from shop_orders.infrastructure.db_schema import orders_tbl, order_items_tbl
from shop_orders.application.interfaces import OrderRepository

logger = logging.getLogger(__name__)

# Поля, которые можно менять через update(); позиции, владелец и адрес неизменяемы
UPDATABLE_FIELDS = frozenset({
    "discount_code", "discount_amount", "shipping_cost", "total", "tracking_number"
})


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, order: Order) -> Order:
        address = order.shipping_address
        stmt = insert(orders_tbl).values(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            payment_status=order.payment_status,
            subtotal=order.subtotal,
            tax_amount=order.tax_amount,
            shipping_cost=order.shipping_cost,
            discount_code=order.discount_code,
            discount_amount=order.discount_amount,
            total=order.total,
            tracking_number=order.tracking_number,
            shipping_street=address.street,
            shipping_city=address.city,
            shipping_state=address.state,
            shipping_postal_code=address.postal_code,
            shipping_country=address.country,
            version=order.version,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError as e:
            logger.warning(f"Конфликт при создании заказа {order.order_number}: {e}")
            raise ConflictError(f"Order {order.order_number} already exists") from e

        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "order_id": order.id,
                    "position": position,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "product_sku": item.product_sku,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                    "subtotal": item.subtotal
                }
                for position, item in enumerate(order.items)
            ]
        )
        return await self.find_by_id(order.id)

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        orders = await self._fetch(select(orders_tbl).where(orders_tbl.c.id == order_id))
        return orders[0] if orders else None

    async def find_by_id(self, order_id: str) -> Order:
        order = await self.get_by_id(order_id)
        if not order:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    async def find_by_order_number(self, order_number: str) -> Optional[Order]:
        orders = await self._fetch(
            select(orders_tbl).where(orders_tbl.c.order_number == order_number)
        )
        return orders[0] if orders else None

    async def find_by_user_id(self, user_id: str) -> List[Order]:
        return await self._fetch(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )

    async def find_by_status(self, status: OrderStatus) -> List[Order]:
        return await self._fetch(
            select(orders_tbl)
            .where(orders_tbl.c.status == status)
            .order_by(orders_tbl.c.created_at.desc())
        )

    async def find_pending_orders(self) -> List[Order]:
        # Самые старые первыми, чтобы их обработали раньше
        return await self._fetch(
            select(orders_tbl)
            .where(orders_tbl.c.status == OrderStatus.PENDING)
            .order_by(orders_tbl.c.created_at.asc())
        )

    async def find_by_date_range(self, start: datetime, end: datetime) -> List[Order]:
        return await self._fetch(
            select(orders_tbl)
            .where(orders_tbl.c.created_at >= start)
            .where(orders_tbl.c.created_at <= end)
            .order_by(orders_tbl.c.created_at.desc())
        )

    async def update_status(
        self, order_id: str, status: OrderStatus, expected_version: Optional[int] = None
    ) -> Order:
        return await self._apply(order_id, {"status": status}, expected_version)

    async def update_payment_status(
        self, order_id: str, status: PaymentStatus, expected_version: Optional[int] = None
    ) -> Order:
        values = {"payment_status": status}
        if status == PaymentStatus.PAID:
            values["paid_at"] = func.coalesce(orders_tbl.c.paid_at, datetime.now(timezone.utc))
        return await self._apply(order_id, values, expected_version)

    async def mark_as_shipped(
        self, order_id: str, tracking_number: str, expected_version: Optional[int] = None
    ) -> Order:
        return await self._apply(
            order_id,
            {
                "status": OrderStatus.SHIPPED,
                "tracking_number": tracking_number,
                "shipped_at": func.coalesce(orders_tbl.c.shipped_at, datetime.now(timezone.utc))
            },
            expected_version
        )

    async def mark_as_delivered(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        return await self._apply(
            order_id,
            {
                "status": OrderStatus.DELIVERED,
                "delivered_at": func.coalesce(orders_tbl.c.delivered_at, datetime.now(timezone.utc))
            },
            expected_version
        )

    async def cancel_order(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        return await self._apply(
            order_id,
            {
                "status": OrderStatus.CANCELLED,
                "cancelled_at": func.coalesce(orders_tbl.c.cancelled_at, datetime.now(timezone.utc))
            },
            expected_version
        )

    async def update(self, order_id: str, fields: dict, expected_version: Optional[int] = None) -> Order:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        return await self._apply(order_id, dict(fields), expected_version)

    async def get_total_revenue(self) -> Decimal:
        result = await self._session.execute(
            select(func.coalesce(func.sum(orders_tbl.c.total), 0))
            .where(orders_tbl.c.payment_status == PaymentStatus.PAID)
        )
        return money.round2(result.scalar() or 0)

    async def get_order_stats(self) -> List[OrderStats]:
        result = await self._session.execute(
            select(orders_tbl.c.status, func.count(orders_tbl.c.id).label("orders_count"))
            .group_by(orders_tbl.c.status)
        )
        return [OrderStats(status=row.status, count=int(row.orders_count)) for row in result.fetchall()]

    async def next_order_sequence(self, year: int) -> int:
        result = await self._session.execute(
            select(func.count(orders_tbl.c.id))
            .where(orders_tbl.c.order_number.like(f"ORD-{year}-%"))
        )
        return int(result.scalar() or 0) + 1

    async def _apply(self, order_id: str, values: dict, expected_version: Optional[int]) -> Order:
        """UPDATE одной строки с проверкой версии (optimistic lock)"""
        stmt = update(orders_tbl).where(orders_tbl.c.id == order_id)
        if expected_version is not None:
            stmt = stmt.where(orders_tbl.c.version == expected_version)
        stmt = stmt.values(
            **values,
            version=orders_tbl.c.version + 1,
            updated_at=datetime.now(timezone.utc)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            # Либо заказа нет (поднимет OrderNotFoundError), либо версия устарела
            await self.find_by_id(order_id)
            logger.warning(f"Заказ {order_id} изменен параллельно (ожидалась версия {expected_version})")
            raise ConflictError("Order was modified concurrently")
        return await self.find_by_id(order_id)

    async def _fetch(self, query) -> List[Order]:
        result = await self._session.execute(query)
        rows = result.fetchall()
        if not rows:
            return []

        items_result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_([row.id for row in rows]))
            .order_by(order_items_tbl.c.order_id, order_items_tbl.c.position)
        )
        items_by_order = defaultdict(list)
        for item_row in items_result.fetchall():
            items_by_order[item_row.order_id].append(self._item_to_domain(item_row))

        return [self._to_domain(row, items_by_order[row.id]) for row in rows]

    def _item_to_domain(self, row) -> OrderItem:
        return OrderItem(
            product_id=row.product_id,
            product_name=row.product_name,
            product_sku=row.product_sku,
            unit_price=money.round2(row.unit_price),
            quantity=row.quantity,
            subtotal=money.round2(row.subtotal)
        )

    def _to_domain(self, row, items: List[OrderItem]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            items=items,
            shipping_address=ShippingAddress(
                street=row.shipping_street,
                city=row.shipping_city,
                state=row.shipping_state,
                postal_code=row.shipping_postal_code,
                country=row.shipping_country
            ),
            subtotal=money.round2(row.subtotal),
            tax_amount=money.round2(row.tax_amount),
            shipping_cost=money.round2(row.shipping_cost),
            discount_code=row.discount_code,
            discount_amount=money.round2(row.discount_amount) if row.discount_amount is not None else None,
            total=money.round2(row.total),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            tracking_number=row.tracking_number,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
            paid_at=row.paid_at,
            shipped_at=row.shipped_at,
            delivered_at=row.delivered_at,
            cancelled_at=row.cancelled_at
        )

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from shop_orders.domain.models import Order, OrderStatus
from shop_orders.application.interfaces import NotificationsService
from shop_orders.application.create_order import CreateOrderUseCase, CreateOrderDTO
from shop_orders.application.get_order import (
    GetOrderUseCase,
    GetOrderByNumberUseCase,
    GetUserOrdersUseCase,
    GetOrdersByStatusUseCase,
    GetOrdersInPeriodUseCase
)
from shop_orders.application.process_payment import ProcessPaymentUseCase
from shop_orders.application.order_transitions import (
    ConfirmOrderUseCase, ShipOrderUseCase, DeliverOrderUseCase, CancelOrderUseCase
)
from shop_orders.application.apply_discount import ApplyDiscountUseCase
from shop_orders.application.order_reports import (
    GetOrderTotalUseCase, GetTotalRevenueUseCase, GetOrderStatisticsUseCase
)


class OrderService:
    """Единая точка входа для всех операций с заказами.

    Состояния между вызовами не хранит: каждая операция открывает
    свой unit of work.
    """

    def __init__(self, unit_of_work, notifications_service: Optional[NotificationsService] = None):
        self._create_order = CreateOrderUseCase(unit_of_work, notifications_service)
        self._get_order = GetOrderUseCase(unit_of_work)
        self._get_order_by_number = GetOrderByNumberUseCase(unit_of_work)
        self._get_user_orders = GetUserOrdersUseCase(unit_of_work)
        self._get_orders_by_status = GetOrdersByStatusUseCase(unit_of_work)
        self._get_orders_in_period = GetOrdersInPeriodUseCase(unit_of_work)
        self._process_payment = ProcessPaymentUseCase(unit_of_work)
        self._confirm_order = ConfirmOrderUseCase(unit_of_work)
        self._ship_order = ShipOrderUseCase(unit_of_work, notifications_service)
        self._deliver_order = DeliverOrderUseCase(unit_of_work)
        self._cancel_order = CancelOrderUseCase(unit_of_work, notifications_service)
        self._apply_discount = ApplyDiscountUseCase(unit_of_work)
        self._get_order_total = GetOrderTotalUseCase(unit_of_work)
        self._get_total_revenue = GetTotalRevenueUseCase(unit_of_work)
        self._get_order_statistics = GetOrderStatisticsUseCase(unit_of_work)

    async def create_order(self, order_data: CreateOrderDTO) -> Order:
        return await self._create_order(order_data)

    async def get_order_by_id(self, order_id: str) -> Order:
        return await self._get_order(order_id)

    async def get_order_by_number(self, order_number: str) -> Order:
        return await self._get_order_by_number(order_number)

    async def get_user_orders(self, user_id: str) -> List[Order]:
        return await self._get_user_orders(user_id)

    async def get_orders_by_status(self, status: OrderStatus) -> List[Order]:
        return await self._get_orders_by_status(status)

    async def get_pending_orders(self) -> List[Order]:
        return await self._get_orders_by_status(OrderStatus.PENDING)

    async def get_orders_in_period(self, start: datetime, end: datetime) -> List[Order]:
        return await self._get_orders_in_period(start, end)

    async def confirm_order(self, order_id: str) -> Order:
        return await self._confirm_order(order_id)

    async def process_payment(self, order_id: str, payment_reference: Optional[str]) -> Order:
        return await self._process_payment(order_id, payment_reference)

    async def ship_order(self, order_id: str, tracking_number: str) -> Order:
        return await self._ship_order(order_id, tracking_number)

    async def deliver_order(self, order_id: str) -> Order:
        return await self._deliver_order(order_id)

    async def cancel_order(self, order_id: str) -> Order:
        return await self._cancel_order(order_id)

    async def apply_discount(self, order_id: str, code: str, amount) -> Order:
        return await self._apply_discount(order_id, code, amount)

    async def get_order_total(self, order_id: str) -> Decimal:
        return await self._get_order_total(order_id)

    async def get_total_revenue(self) -> Decimal:
        return await self._get_total_revenue()

    async def get_order_statistics(self) -> Dict[OrderStatus, int]:
        return await self._get_order_statistics()

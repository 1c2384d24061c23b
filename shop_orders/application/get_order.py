from datetime import datetime
from typing import List

from shop_orders.domain.models import Order, OrderStatus
from shop_orders.domain.exceptions import OrderNotFoundError, ValidationError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        # find_by_id сам поднимает OrderNotFoundError
        async with self._uow() as uow:
            return await uow.orders.find_by_id(order_id)


class GetOrderByNumberUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_number: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.find_by_order_number(order_number)
            if not order:
                raise OrderNotFoundError(f"Order {order_number} not found")
            return order


class GetUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> List[Order]:
        async with self._uow() as uow:
            return list(await uow.orders.find_by_user_id(user_id))


class GetOrdersByStatusUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, status: OrderStatus) -> List[Order]:
        async with self._uow() as uow:
            if status == OrderStatus.PENDING:
                return list(await uow.orders.find_pending_orders())
            return list(await uow.orders.find_by_status(status))


class GetOrdersInPeriodUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, start: datetime, end: datetime) -> List[Order]:
        if start > end:
            raise ValidationError("Start date must not be after end date")
        async with self._uow() as uow:
            return list(await uow.orders.find_by_date_range(start, end))

from decimal import Decimal
from typing import Dict

from shop_orders.domain import money
from shop_orders.domain.models import OrderStatus


class GetOrderTotalUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Decimal:
        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
        return order.calculate_total()


class GetTotalRevenueUseCase:
    """Выручка только по оплаченным (PAID) заказам"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> Decimal:
        async with self._uow() as uow:
            revenue = await uow.orders.get_total_revenue()
        return money.round2(revenue or 0)


class GetOrderStatisticsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> Dict[OrderStatus, int]:
        # Статусы без заказов в результат не попадают
        async with self._uow() as uow:
            stats = await uow.orders.get_order_stats()
        return {OrderStatus(row.status): int(row.count) for row in stats}

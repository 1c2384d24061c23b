"""Переходы статуса заказа.

PENDING -> CONFIRMED -> SHIPPED -> DELIVERED
PENDING | CONFIRMED -> CANCELLED

DELIVERED и CANCELLED терминальные. Каждый use case читает заказ,
проверяет допустимость перехода и пишет с проверкой версии.
"""
import logging
from typing import Optional

from shop_orders.domain.models import Order, OrderStatus
from shop_orders.domain.exceptions import InvalidStateTransitionError
from shop_orders.application.interfaces import NotificationsService
from shop_orders.application.notifications import notify_user

logger = logging.getLogger(__name__)


def _reject(order: Order, action: str):
    logger.warning(f"Заказ {order.id} не может быть {action} (status: {order.status.value})")
    raise InvalidStateTransitionError(action, order.status)


class ConfirmOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
            if not order.can_be_confirmed():
                _reject(order, "confirmed")
            confirmed = await uow.orders.update_status(
                order_id, OrderStatus.CONFIRMED, expected_version=order.version
            )
            await uow.commit()
        logger.info(f"Заказ {order_id} отмечен CONFIRMED")
        return confirmed


class ShipOrderUseCase:
    # Оплата перед отправкой не проверяется: статусы оплаты и заказа независимы
    def __init__(self, unit_of_work, notifications_service: Optional[NotificationsService] = None):
        self._uow = unit_of_work
        self._notifications = notifications_service

    async def __call__(self, order_id: str, tracking_number: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
            if not order.can_be_shipped():
                _reject(order, "shipped")
            shipped = await uow.orders.mark_as_shipped(
                order_id, tracking_number, expected_version=order.version
            )
            await uow.commit()
        logger.info(f"Заказ {order_id} отмечен SHIPPED, трек {tracking_number}")

        await notify_user(
            self._notifications,
            shipped,
            message=f"Ваш заказ {shipped.order_number} отправлен (SHIPPED). Трек-номер: {tracking_number}",
            event="order_shipped"
        )
        return shipped


class DeliverOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
            if not order.can_be_delivered():
                _reject(order, "delivered")
            delivered = await uow.orders.mark_as_delivered(order_id, expected_version=order.version)
            await uow.commit()
        logger.info(f"Заказ {order_id} отмечен DELIVERED")
        return delivered


class CancelOrderUseCase:
    def __init__(self, unit_of_work, notifications_service: Optional[NotificationsService] = None):
        self._uow = unit_of_work
        self._notifications = notifications_service

    async def __call__(self, order_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
            if not order.can_be_cancelled():
                _reject(order, "cancelled")
            cancelled = await uow.orders.cancel_order(order_id, expected_version=order.version)
            await uow.commit()
        logger.info(f"Заказ {order_id} отмечен CANCELLED")

        await notify_user(
            self._notifications,
            cancelled,
            message=f"Ваш заказ {cancelled.order_number} отменен (CANCELLED)",
            event="order_cancelled"
        )
        return cancelled

import logging
from typing import Optional

from shop_orders.domain.models import Order, PaymentStatus

logger = logging.getLogger(__name__)


class ProcessPaymentUseCase:
    """Фиксирует результат оплаты.

    Статус оплаты не зависит от статуса заказа: заказ при оплате
    никуда не переводится.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, payment_reference: Optional[str]) -> Order:
        logger.info(f"Обработка оплаты заказа {order_id}, reference={payment_reference!r}")

        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)

            # Идемпотентность
            if payment_reference and order.is_paid():
                logger.info(f"Заказ {order.id} уже оплачен")
                return order

            new_status = PaymentStatus.PAID if payment_reference else PaymentStatus.FAILED
            updated = await uow.orders.update_payment_status(
                order_id, new_status, expected_version=order.version
            )
            await uow.commit()

        if new_status == PaymentStatus.PAID:
            logger.info(f"Заказ {order_id} отмечен PAID")
        else:
            logger.warning(f"Оплата заказа {order_id} не прошла (FAILED)")
        return updated

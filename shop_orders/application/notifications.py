import logging
from typing import Optional

from shop_orders.domain.models import Order
from shop_orders.application.interfaces import NotificationsService

logger = logging.getLogger(__name__)


async def notify_user(
    notifications: Optional[NotificationsService],
    order: Order,
    message: str,
    event: str
) -> bool:
    """Отправляет уведомление по заказу. Ошибка доставки не ломает операцию."""
    if notifications is None:
        return False
    try:
        sent = await notifications.send(
            message=message,
            reference_id=order.id,
            idempotency_key=f"notification_{event}_{order.id}",
            user_id=order.user_id
        )
    except Exception as e:
        logger.error(f"Ошибка отправки уведомления '{event}' для {order.id}: {e}")
        return False

    if sent:
        logger.info(f"Отправлено уведомление '{event}' для {order.id}")
    else:
        logger.info(f"Не отправлено уведомление '{event}' для {order.id}")
    return bool(sent)

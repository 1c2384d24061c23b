import logging
from decimal import InvalidOperation

from shop_orders.domain import money
from shop_orders.domain.models import Order
from shop_orders.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ApplyDiscountUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, code: str, amount) -> Order:
        try:
            amount = money.to_money(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise ValidationError("Discount amount must be positive")
        # NaN и бесконечность ломают сравнение и quantize
        if not amount.is_finite():
            raise ValidationError("Discount amount must be positive")
        amount = money.round2(amount)
        if amount <= 0:
            raise ValidationError("Discount amount must be positive")

        async with self._uow() as uow:
            order = await uow.orders.find_by_id(order_id)
            if amount > order.subtotal:
                raise ValidationError("Discount amount cannot exceed order subtotal")

            # Новая скидка заменяет прежнюю, итог пересчитывается целиком
            total = money.compute_total(order.subtotal, order.tax_amount, order.shipping_cost, amount)
            updated = await uow.orders.update(
                order_id,
                {"discount_code": code, "discount_amount": amount, "total": total},
                expected_version=order.version
            )
            await uow.commit()

        logger.info(f"К заказу {order_id} применена скидка {code} на {amount}, итого {total}")
        return updated

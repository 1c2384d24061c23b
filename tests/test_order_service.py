"""OrderService с мок-репозиторием: валидация, переходы, расчеты"""
from datetime import datetime
from decimal import Decimal

import pytest

from shop_orders.application.create_order import OrderItemDTO
from shop_orders.domain.exceptions import (
    ValidationError, OrderNotFoundError, InvalidStateTransitionError, ConflictError
)
from shop_orders.domain.models import (
    OrderStatus, OrderStats, PaymentStatus, ORDER_NUMBER_PATTERN
)
from shop_orders.application.order_service import OrderService
from conftest import FakeUnitOfWork, RecordingNotifications


def echo_create(mock_repo):
    async def _create(order):
        return order
    mock_repo.create.side_effect = _create
    mock_repo.next_order_sequence.return_value = 1


class TestCreateOrder:
    async def test_creates_pending_order(self, mocked_service, mock_repo, order_data):
        echo_create(mock_repo)

        order = await mocked_service.create_order(order_data)

        assert order.status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert ORDER_NUMBER_PATTERN.match(order.order_number)
        assert order.order_number.endswith("-001")
        assert order.subtotal == Decimal("100.00")
        assert order.tax_amount == Decimal("10.00")
        assert order.shipping_cost == Decimal("10.00")
        assert order.total == Decimal("120.00")
        mock_repo.create.assert_awaited_once()

    async def test_calculates_subtotal_and_tax(self, mocked_service, mock_repo, order_data):
        echo_create(mock_repo)
        order_data.items.append(OrderItemDTO(
            product_id="prod-2",
            product_name="Product 2",
            product_sku="SKU-002",
            unit_price=Decimal("30.00"),
            quantity=3
        ))

        await mocked_service.create_order(order_data)

        created = mock_repo.create.await_args.args[0]
        assert created.subtotal == Decimal("190.00")
        assert created.tax_amount == Decimal("19.00")
        assert created.total == Decimal("219.00")
        assert [item.subtotal for item in created.items] == [Decimal("100.00"), Decimal("90.00")]

    async def test_ignores_client_supplied_item_subtotal(self, mocked_service, mock_repo, order_data):
        echo_create(mock_repo)
        order_data.items[0].subtotal = Decimal("1.00")

        order = await mocked_service.create_order(order_data)

        assert order.items[0].subtotal == Decimal("100.00")

    async def test_rejects_empty_items(self, mocked_service, mock_repo, order_data):
        order_data.items = []

        with pytest.raises(ValidationError, match="Order must contain at least one item"):
            await mocked_service.create_order(order_data)
        mock_repo.create.assert_not_awaited()
        mock_repo.next_order_sequence.assert_not_awaited()

    async def test_rejects_negative_quantity(self, mocked_service, mock_repo, order_data):
        order_data.items[0].quantity = -1

        with pytest.raises(ValidationError, match="Item quantity must be positive"):
            await mocked_service.create_order(order_data)
        mock_repo.create.assert_not_awaited()

    async def test_sends_confirmation_notification(self, mocked_service, mock_repo, order_data, notifications):
        echo_create(mock_repo)

        order = await mocked_service.create_order(order_data)

        assert len(notifications.sent) == 1
        assert notifications.sent[0]["reference_id"] == order.id
        assert notifications.sent[0]["user_id"] == "user-123"

    async def test_notification_failure_is_not_fatal(self, mock_repo, order_data):
        echo_create(mock_repo)
        failing = RecordingNotifications(error=RuntimeError("SMTP error"))
        service = OrderService(FakeUnitOfWork(mock_repo), failing)

        order = await service.create_order(order_data)

        assert order.status == OrderStatus.PENDING
        assert len(failing.sent) == 1

    async def test_works_without_notifications(self, mock_repo, order_data):
        echo_create(mock_repo)
        service = OrderService(FakeUnitOfWork(mock_repo))

        order = await service.create_order(order_data)

        assert order.total == Decimal("120.00")


class TestReads:
    async def test_get_order_by_id(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order()

        order = await mocked_service.get_order_by_id("order-123")

        assert order.id == "order-123"

    async def test_get_order_by_id_propagates_not_found(self, mocked_service, mock_repo):
        mock_repo.find_by_id.side_effect = OrderNotFoundError("Order not found")

        with pytest.raises(OrderNotFoundError):
            await mocked_service.get_order_by_id("invalid")

    async def test_get_order_by_number_not_found(self, mocked_service, mock_repo):
        mock_repo.find_by_order_number.return_value = None

        with pytest.raises(OrderNotFoundError):
            await mocked_service.get_order_by_number("ORD-2024-999")

    async def test_user_without_orders_gets_empty_list(self, mocked_service, mock_repo):
        mock_repo.find_by_user_id.return_value = []

        assert await mocked_service.get_user_orders("user-456") == []

    async def test_pending_orders_use_dedicated_query(self, mocked_service, mock_repo, make_order):
        mock_repo.find_pending_orders.return_value = [make_order()]

        orders = await mocked_service.get_pending_orders()

        assert len(orders) == 1
        mock_repo.find_by_status.assert_not_awaited()

    async def test_period_with_reversed_bounds_is_rejected(self, mocked_service, mock_repo):
        with pytest.raises(ValidationError, match="Start date must not be after end date"):
            await mocked_service.get_orders_in_period(datetime(2024, 12, 31), datetime(2024, 1, 1))
        mock_repo.find_by_date_range.assert_not_awaited()


class TestTransitions:
    async def test_confirm_pending_order(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(version=3)
        mock_repo.update_status.return_value = make_order(status=OrderStatus.CONFIRMED, version=4)

        order = await mocked_service.confirm_order("order-123")

        assert order.status == OrderStatus.CONFIRMED
        mock_repo.update_status.assert_awaited_once_with(
            "order-123", OrderStatus.CONFIRMED, expected_version=3
        )

    @pytest.mark.parametrize("status", [
        OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED
    ])
    async def test_confirm_rejected_outside_pending(self, mocked_service, mock_repo, make_order, status):
        mock_repo.find_by_id.return_value = make_order(status=status)

        with pytest.raises(InvalidStateTransitionError, match="Order cannot be confirmed in current status"):
            await mocked_service.confirm_order("order-123")
        mock_repo.update_status.assert_not_awaited()

    async def test_ship_confirmed_order(self, mocked_service, mock_repo, make_order, notifications):
        mock_repo.find_by_id.return_value = make_order(status=OrderStatus.CONFIRMED)
        mock_repo.mark_as_shipped.return_value = make_order(
            status=OrderStatus.SHIPPED, tracking_number="TRACK-123"
        )

        order = await mocked_service.ship_order("order-123", "TRACK-123")

        assert order.status == OrderStatus.SHIPPED
        assert order.tracking_number == "TRACK-123"
        assert "TRACK-123" in notifications.sent[0]["message"]

    async def test_ship_does_not_require_payment(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(
            status=OrderStatus.CONFIRMED, payment_status=PaymentStatus.FAILED
        )
        mock_repo.mark_as_shipped.return_value = make_order(status=OrderStatus.SHIPPED)

        order = await mocked_service.ship_order("order-123", "TRACK-1")

        assert order.status == OrderStatus.SHIPPED

    async def test_ship_pending_order_is_rejected(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(status=OrderStatus.PENDING)

        with pytest.raises(InvalidStateTransitionError, match="Order cannot be shipped in current status"):
            await mocked_service.ship_order("order-123", "TRACK-1")

    async def test_deliver_shipped_order(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(status=OrderStatus.SHIPPED)
        mock_repo.mark_as_delivered.return_value = make_order(status=OrderStatus.DELIVERED)

        order = await mocked_service.deliver_order("order-123")

        assert order.status == OrderStatus.DELIVERED

    async def test_deliver_confirmed_order_is_rejected(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(status=OrderStatus.CONFIRMED)

        with pytest.raises(InvalidStateTransitionError, match="Order cannot be delivered in current status"):
            await mocked_service.deliver_order("order-123")

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED])
    async def test_cancel_allowed(self, mocked_service, mock_repo, make_order, status):
        mock_repo.find_by_id.return_value = make_order(status=status)
        mock_repo.cancel_order.return_value = make_order(status=OrderStatus.CANCELLED)

        order = await mocked_service.cancel_order("order-123")

        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("status", [
        OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED
    ])
    async def test_cancel_rejected(self, mocked_service, mock_repo, make_order, status):
        mock_repo.find_by_id.return_value = make_order(status=status)

        with pytest.raises(InvalidStateTransitionError, match="Order cannot be cancelled in current status") as exc:
            await mocked_service.cancel_order("order-123")
        assert exc.value.current_status == status
        mock_repo.cancel_order.assert_not_awaited()

    async def test_conflict_from_repository_propagates(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(status=OrderStatus.PENDING)
        mock_repo.cancel_order.side_effect = ConflictError("Order was modified concurrently")

        with pytest.raises(ConflictError):
            await mocked_service.cancel_order("order-123")


class TestPayment:
    async def test_payment_with_reference_marks_paid(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order()
        mock_repo.update_payment_status.return_value = make_order(payment_status=PaymentStatus.PAID)

        order = await mocked_service.process_payment("order-123", "payment-ref-123")

        assert order.payment_status == PaymentStatus.PAID
        mock_repo.update_payment_status.assert_awaited_once_with(
            "order-123", PaymentStatus.PAID, expected_version=1
        )

    @pytest.mark.parametrize("reference", [None, ""])
    async def test_payment_without_reference_marks_failed(self, mocked_service, mock_repo, make_order, reference):
        mock_repo.find_by_id.return_value = make_order()
        mock_repo.update_payment_status.return_value = make_order(payment_status=PaymentStatus.FAILED)

        order = await mocked_service.process_payment("order-123", reference)

        assert order.payment_status == PaymentStatus.FAILED
        mock_repo.update_payment_status.assert_awaited_once_with(
            "order-123", PaymentStatus.FAILED, expected_version=1
        )

    async def test_payment_does_not_touch_order_status(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order()
        mock_repo.update_payment_status.return_value = make_order(payment_status=PaymentStatus.PAID)

        await mocked_service.process_payment("order-123", "ref")

        mock_repo.update_status.assert_not_awaited()

    async def test_repeated_successful_payment_is_idempotent(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(payment_status=PaymentStatus.PAID)

        order = await mocked_service.process_payment("order-123", "ref")

        assert order.is_paid()
        mock_repo.update_payment_status.assert_not_awaited()


class TestDiscount:
    async def test_apply_valid_discount(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order()
        mock_repo.update.return_value = make_order(
            discount_code="SAVE20", discount_amount=Decimal("20.00"), total=Decimal("100.00")
        )

        order = await mocked_service.apply_discount("order-123", "SAVE20", Decimal("20.00"))

        assert order.discount_code == "SAVE20"
        assert order.discount_amount == Decimal("20.00")
        mock_repo.update.assert_awaited_once_with(
            "order-123",
            {"discount_code": "SAVE20", "discount_amount": Decimal("20.00"), "total": Decimal("100.00")},
            expected_version=1
        )

    async def test_discount_equal_to_subtotal_is_allowed(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order()
        mock_repo.update.return_value = make_order()

        await mocked_service.apply_discount("order-123", "FREE", 100)

        fields = mock_repo.update.await_args.args[1]
        assert fields["total"] == Decimal("20.00")

    async def test_rejects_discount_greater_than_subtotal(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(subtotal=Decimal("50.00"))

        with pytest.raises(ValidationError, match="Discount amount cannot exceed order subtotal"):
            await mocked_service.apply_discount("order-123", "INVALID", Decimal("100.00"))
        mock_repo.update.assert_not_awaited()

    @pytest.mark.parametrize("amount", [Decimal("-10.00"), 0])
    async def test_rejects_non_positive_discount(self, mocked_service, mock_repo, amount):
        with pytest.raises(ValidationError, match="Discount amount must be positive"):
            await mocked_service.apply_discount("order-123", "INVALID", amount)
        mock_repo.find_by_id.assert_not_awaited()

    @pytest.mark.parametrize("amount", [Decimal("NaN"), Decimal("Infinity"), "abc", None])
    async def test_rejects_non_numeric_discount(self, mocked_service, mock_repo, amount):
        with pytest.raises(ValidationError, match="Discount amount must be positive"):
            await mocked_service.apply_discount("order-123", "INVALID", amount)
        mock_repo.find_by_id.assert_not_awaited()


class TestReports:
    async def test_order_total_includes_tax_and_shipping(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(shipping_cost=Decimal("15.00"))

        assert await mocked_service.get_order_total("order-123") == Decimal("125.00")

    async def test_order_total_subtracts_discount(self, mocked_service, mock_repo, make_order):
        mock_repo.find_by_id.return_value = make_order(
            shipping_cost=Decimal("15.00"), discount_amount=Decimal("25.00")
        )

        assert await mocked_service.get_order_total("order-123") == Decimal("100.00")

    async def test_total_revenue(self, mocked_service, mock_repo):
        mock_repo.get_total_revenue.return_value = Decimal("15000.00")

        assert await mocked_service.get_total_revenue() == Decimal("15000.00")

    async def test_order_statistics_mapping(self, mocked_service, mock_repo):
        mock_repo.get_order_stats.return_value = [
            OrderStats(status=OrderStatus.PENDING, count=10),
            OrderStats(status=OrderStatus.DELIVERED, count=45),
        ]

        stats = await mocked_service.get_order_statistics()

        assert stats == {OrderStatus.PENDING: 10, OrderStatus.DELIVERED: 45}

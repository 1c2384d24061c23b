from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from shop_orders.application.create_order import CreateOrderDTO, OrderItemDTO
from shop_orders.application.interfaces import OrderRepository, NotificationsService
from shop_orders.application.order_service import OrderService
from shop_orders.domain.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, ShippingAddress
)
from shop_orders.infrastructure.db_schema import metadata
from shop_orders.infrastructure.unit_of_work import UnitOfWork


class FakeUnitOfWork:
    """UoW поверх мок-репозитория для тестов сервиса"""

    def __init__(self, repository):
        self.orders = repository
        self.commit = AsyncMock()
        self.rollback = AsyncMock()

    @asynccontextmanager
    async def __call__(self):
        yield self


class RecordingNotifications(NotificationsService):
    def __init__(self, result=True, error=None):
        self.sent = []
        self._result = result
        self._error = error

    async def send(self, message, reference_id, idempotency_key, user_id):
        self.sent.append({
            "message": message,
            "reference_id": reference_id,
            "idempotency_key": idempotency_key,
            "user_id": user_id
        })
        if self._error:
            raise self._error
        return self._result


@pytest.fixture
def shipping_address():
    return ShippingAddress(
        street="123 Main St",
        city="New York",
        state="NY",
        postal_code="10001",
        country="USA"
    )


@pytest.fixture
def order_data(shipping_address):
    return CreateOrderDTO(
        user_id="user-123",
        items=[
            OrderItemDTO(
                product_id="prod-1",
                product_name="Product 1",
                product_sku="SKU-001",
                unit_price=Decimal("50.00"),
                quantity=2
            )
        ],
        shipping_address=shipping_address
    )


@pytest.fixture
def make_order(shipping_address):
    def _make(**overrides):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        fields = dict(
            id="order-123",
            order_number="ORD-2024-001",
            user_id="user-123",
            items=[
                OrderItem(
                    product_id="prod-1",
                    product_name="Product 1",
                    product_sku="SKU-001",
                    unit_price=Decimal("50.00"),
                    quantity=2,
                    subtotal=Decimal("100.00")
                )
            ],
            shipping_address=shipping_address,
            subtotal=Decimal("100.00"),
            tax_amount=Decimal("10.00"),
            shipping_cost=Decimal("10.00"),
            total=Decimal("120.00"),
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            version=1,
            created_at=now,
            updated_at=now
        )
        fields.update(overrides)
        return Order(**fields)
    return _make


@pytest.fixture
def mock_repo():
    return AsyncMock(spec=OrderRepository)


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def mocked_service(mock_repo, notifications):
    return OrderService(FakeUnitOfWork(mock_repo), notifications)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def service(uow, notifications):
    return OrderService(uow, notifications)

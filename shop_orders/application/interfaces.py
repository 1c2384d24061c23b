from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from shop_orders.domain.models import Order, OrderStatus, PaymentStatus, OrderStats


class OrderRepository(ABC):
    """Контракт хранилища заказов.

    Все изменяющие методы принимают expected_version: если версия в БД
    не совпадает, поднимается ConflictError.
    """

    @abstractmethod
    async def create(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def find_by_id(self, order_id: str) -> Order:
        pass

    @abstractmethod
    async def find_by_order_number(self, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def find_by_status(self, status: OrderStatus) -> List[Order]:
        pass

    @abstractmethod
    async def find_pending_orders(self) -> List[Order]:
        pass

    @abstractmethod
    async def find_by_date_range(self, start: datetime, end: datetime) -> List[Order]:
        pass

    @abstractmethod
    async def update_status(
        self, order_id: str, status: OrderStatus, expected_version: Optional[int] = None
    ) -> Order:
        pass

    @abstractmethod
    async def update_payment_status(
        self, order_id: str, status: PaymentStatus, expected_version: Optional[int] = None
    ) -> Order:
        pass

    @abstractmethod
    async def mark_as_shipped(
        self, order_id: str, tracking_number: str, expected_version: Optional[int] = None
    ) -> Order:
        pass

    @abstractmethod
    async def mark_as_delivered(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str, expected_version: Optional[int] = None) -> Order:
        pass

    @abstractmethod
    async def update(self, order_id: str, fields: dict, expected_version: Optional[int] = None) -> Order:
        pass

    @abstractmethod
    async def get_total_revenue(self) -> Decimal:
        pass

    @abstractmethod
    async def get_order_stats(self) -> List[OrderStats]:
        pass

    @abstractmethod
    async def next_order_sequence(self, year: int) -> int:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class NotificationsService(ABC):
    @abstractmethod
    async def send(self, message: str, reference_id: str, idempotency_key: str, user_id: str) -> bool:
        pass

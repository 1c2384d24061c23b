import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from shop_orders.infrastructure.repositories import SQLAlchemyOrderRepository

logger = logging.getLogger(__name__)


class OrdersTransaction:
    """Одна транзакция над заказами: репозиторий и явный commit"""

    def __init__(self, session: AsyncSession):
        self._session = session
        self.orders = SQLAlchemyOrderRepository(session)
        self.committed = False

    async def commit(self):
        await self._session.commit()
        self.committed = True

    async def rollback(self):
        await self._session.rollback()
        self.committed = False


class UnitOfWork:
    """Открывает сессию на каждый вызов.

    Изменения без явного commit() откатываются при выходе из блока,
    при исключении откат выполняется всегда.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self) -> AsyncIterator[OrdersTransaction]:
        async with self._session_factory() as session:
            transaction = OrdersTransaction(session)
            try:
                yield transaction
            except Exception as e:
                logger.debug(f"Откат транзакции заказов: {e}")
                await session.rollback()
                raise
            if not transaction.committed:
                await session.rollback()

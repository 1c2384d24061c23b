from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession

from shop_orders.config import settings


@lru_cache
def get_engine() -> AsyncEngine:
    """Движок создается при первом обращении, когда строка подключения уже задана"""
    if not settings.POSTGRES_CONNECTION_STRING:
        raise RuntimeError("POSTGRES_CONNECTION_STRING is not set")
    return create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


async def get_db():
    async with get_session_factory()() as session:
        yield session

import sys
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shop_orders.config import settings
from shop_orders.database import get_engine
from shop_orders.infrastructure.db_schema import metadata
from shop_orders.presentation.api import router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    # Таблицы в проде создает Alembic, create_all нужен для локального запуска
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Таблицы готовы")

    yield

    logger.info("Приложение останавливается...")
    await engine.dispose()


app = FastAPI(
    title="Order Service",
    description="Жизненный цикл заказа и расчет сумм",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Некорректное тело или параметры запроса: 400, как и остальные ошибки валидации"""
    errors = "; ".join(
        f"{'.'.join(str(loc) for loc in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.warning(f"Невалидный запрос {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": f"Invalid request: {errors}"}
    )


@app.get("/health")
async def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("shop_orders.main:app", host="0.0.0.0", port=8000)

import logging
from datetime import datetime
from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shop_orders.database import get_db
from shop_orders.presentation.schemas import (
    CreateOrderRequest,
    OrderResponse,
    PaymentRequest,
    ShipOrderRequest,
    ApplyDiscountRequest,
    OrderTotalResponse,
    RevenueResponse,
    ErrorResponse
)
from shop_orders.application.create_order import CreateOrderDTO
from shop_orders.application.order_service import OrderService
from shop_orders.domain.models import OrderStatus
from shop_orders.domain.exceptions import (
    DomainException,
    ValidationError,
    NotFoundError,
    ConflictError,
    InvalidStateTransitionError
)
from shop_orders.infrastructure.unit_of_work import UnitOfWork
from shop_orders.infrastructure.http_clients import HTTPNotificationsClient, NullNotificationsClient
from shop_orders.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse}
}


def get_notifications_client():
    if not settings.NOTIFICATIONS_BASE_URL:
        return NullNotificationsClient()
    return HTTPNotificationsClient(
        settings.NOTIFICATIONS_BASE_URL,
        settings.API_TOKEN,
        max_retries=settings.NOTIFICATIONS_MAX_RETRIES,
        retry_delay=settings.NOTIFICATIONS_RETRY_DELAY
    )


# Фабрика сервиса заказов
def get_order_service(
    db: AsyncSession = Depends(get_db),
    notifications=Depends(get_notifications_client)
) -> OrderService:
    uow = UnitOfWork(lambda: db)
    return OrderService(uow, notifications)


def to_http_error(error: DomainException) -> HTTPException:
    """Каждому виду ошибки свой код ответа, текст ошибки отдаем как есть"""
    if isinstance(error, ValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, InvalidStateTransitionError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        logger.error(f"Необработанная доменная ошибка: {error}")
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(error))


@router.post(
    "/orders",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: CreateOrderRequest,
    service: OrderService = Depends(get_order_service)
):
    """Создать новый заказ"""
    try:
        dto = CreateOrderDTO(
            user_id=request.user_id,
            items=request.items,
            shipping_address=request.shipping_address
        )
        order = await service.create_order(dto)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.get("/orders", response_model=List[OrderResponse], responses=ERROR_RESPONSES)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    service: OrderService = Depends(get_order_service)
):
    """Заказы по статусу или за период"""
    try:
        if (start is None) != (end is None):
            raise ValidationError("Both start and end dates are required")
        if start is not None and end is not None:
            orders = await service.get_orders_in_period(start, end)
            if status_filter is not None:
                orders = [order for order in orders if order.status == status_filter]
        else:
            orders = await service.get_orders_by_status(status_filter or OrderStatus.PENDING)
        return [OrderResponse.from_domain(order) for order in orders]
    except DomainException as e:
        raise to_http_error(e)


@router.get("/orders/reports/revenue", response_model=RevenueResponse)
async def get_total_revenue(service: OrderService = Depends(get_order_service)):
    """Выручка по оплаченным заказам"""
    revenue = await service.get_total_revenue()
    return RevenueResponse(total_revenue=revenue)


@router.get("/orders/reports/stats", response_model=Dict[str, int])
async def get_order_statistics(service: OrderService = Depends(get_order_service)):
    stats = await service.get_order_statistics()
    return {order_status.value: count for order_status, count in stats.items()}


@router.get("/orders/by-number/{order_number}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def get_order_by_number(order_number: str, service: OrderService = Depends(get_order_service)):
    try:
        order = await service.get_order_by_number(order_number)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.get("/users/{user_id}/orders", response_model=List[OrderResponse])
async def get_user_orders(user_id: str, service: OrderService = Depends(get_order_service)):
    """Заказы пользователя, новые первыми"""
    orders = await service.get_user_orders(user_id)
    return [OrderResponse.from_domain(order) for order in orders]


@router.get("/orders/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    """Получить заказ по ID"""
    try:
        order = await service.get_order_by_id(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.get("/orders/{order_id}/total", response_model=OrderTotalResponse, responses=ERROR_RESPONSES)
async def get_order_total(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        total = await service.get_order_total(order_id)
        return OrderTotalResponse(order_id=order_id, total=total)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/confirm", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def confirm_order(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        order = await service.confirm_order(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/payment", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def process_payment(
    order_id: str,
    request: PaymentRequest,
    service: OrderService = Depends(get_order_service)
):
    """Результат оплаты: без reference платеж считается неуспешным"""
    try:
        order = await service.process_payment(order_id, request.payment_reference)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/ship", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def ship_order(
    order_id: str,
    request: ShipOrderRequest,
    service: OrderService = Depends(get_order_service)
):
    try:
        order = await service.ship_order(order_id, request.tracking_number)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/deliver", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def deliver_order(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        order = await service.deliver_order(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def cancel_order(order_id: str, service: OrderService = Depends(get_order_service)):
    try:
        order = await service.cancel_order(order_id)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)


@router.post("/orders/{order_id}/discount", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def apply_discount(
    order_id: str,
    request: ApplyDiscountRequest,
    service: OrderService = Depends(get_order_service)
):
    try:
        order = await service.apply_discount(order_id, request.code, request.amount)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_error(e)

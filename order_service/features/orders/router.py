"""Orders API router."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from order_service.core.dependencies.database import get_db_session, get_unit_of_work
from order_service.features.orders.schemas import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
)
from order_service.features.orders.service import OrderService
from order_service.infra.database.uow import UnitOfWork

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service() -> OrderService:
    """Get order service dependency."""
    return OrderService()


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place a new order",
)
async def create_order(
    data: OrderCreate,
    uow: Annotated[UnitOfWork, Depends(get_unit_of_work)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    """Place a new order.

    The order and its ``OrderCreatedEvent`` outbox record are committed
    together; the event is published to the broker asynchronously.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/orders \\
          -H "Content-Type: application/json" \\
          -d '{"customerName": "Ada", "customerEmail": "ada@example.com",
               "items": [{"productId": 1, "quantity": 2}]}'
        ```
    """
    order = await service.create_order(uow, data)
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by id",
)
async def get_order(
    order_id: Annotated[int, Path(ge=1)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderResponse:
    order = await service.get_order(session, order_id)
    return OrderResponse.model_validate(order)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders",
)
async def list_orders(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[OrderService, Depends(get_order_service)],
) -> OrderListResponse:
    orders = await service.list_orders(session)
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )

"""
Admin Order Endpoints

Order board for staff: filtered listing, order detail and status changes
through the order state machine.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.deps import Identity, any_admin, rate_limited
from orderdesk.database import get_db
from orderdesk.models import Order, OrderStatus, OrderType, utcnow
from orderdesk.schemas import (
    ApiResponse,
    ErrorResponse,
    OrderListItem,
    OrderPage,
    OrderResponse,
    OrderStatusUpdate,
    Pagination,
)
from orderdesk.services import orders as order_service
from orderdesk.services.reporting import time_ago

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/orders", tags=["Admin Orders"])


def to_list_item(order: Order, now: datetime) -> OrderListItem:
    return OrderListItem(
        **OrderResponse.model_validate(order).model_dump(),
        item_count=len(order.items),
        time_ago=time_ago(now, order.created_at),
    )


def to_order_page(page: order_service.OrderPage) -> OrderPage:
    now = utcnow()
    return OrderPage(
        orders=[to_list_item(order, now) for order in page.orders],
        pagination=Pagination(
            total=page.total,
            limit=page.limit,
            offset=page.offset,
            has_more=page.has_more,
        ),
    )


@router.get(
    "",
    response_model=ApiResponse[OrderPage],
    responses={400: {"model": ErrorResponse}},
    summary="List Orders",
)
async def list_orders(
    status: Optional[str] = Query(None, description="Order status or 'all'"),
    order_type: Optional[str] = Query(None, alias="orderType", description="dine-in, delivery or 'all'"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    search: Optional[str] = Query(None, max_length=100, description="Customer name, phone or order id"),
    sort_by: str = Query("created_at", alias="sortBy"),
    order: str = Query("desc"),
    limit: int = Query(50),
    offset: int = Query(0),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderPage]:
    criteria = order_service.OrderFilter(
        status=order_service.parse_choice(OrderStatus, status, "status"),
        order_type=order_service.parse_choice(OrderType, order_type, "order type"),
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_dir=order,
        limit=limit,
        offset=offset,
    )
    page = await order_service.list_orders(db, criteria)
    return ApiResponse(message="Orders retrieved successfully", data=to_order_page(page))


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get Order",
)
async def get_order(
    order_id: int = Path(..., ge=1),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderResponse]:
    order = await order_service.get_order(db, order_id)
    return ApiResponse(message="Order retrieved successfully", data=OrderResponse.model_validate(order))


@router.put(
    "/{order_id}/status",
    response_model=ApiResponse[OrderResponse],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Update Order Status",
)
async def update_order_status(
    data: OrderStatusUpdate,
    order_id: int = Path(..., ge=1),
    identity: Identity = Depends(rate_limited("admin", any_admin)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderResponse]:
    order = await order_service.update_status(db, order_id, data.status)
    logger.info(f"Admin #{identity.id} set order #{order_id} to '{order.status.value}'")
    return ApiResponse(
        message="Order status updated successfully",
        data=OrderResponse.model_validate(order),
    )

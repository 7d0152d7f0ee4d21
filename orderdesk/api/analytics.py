"""
Dashboard, Statistics and Notification Endpoints

Read-only reporting for admins. All figures come from
``orderdesk.services.reporting``.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.deps import Identity, any_admin
from orderdesk.core.config import get_settings
from orderdesk.database import get_db
from orderdesk.models import OrderStatus, OrderType
from orderdesk.schemas import (
    ApiResponse,
    Notification,
    NotificationCount,
    NotificationList,
    OrderResponse,
    TopItem,
)
from orderdesk.services import reporting
from orderdesk.services.orders import parse_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Analytics"])


# =============================================================================
# STATISTICS
# =============================================================================

@router.get(
    "/stats/top-items",
    response_model=ApiResponse[List[TopItem]],
    summary="Top Ordered Items",
)
async def top_items(
    days: int = Query(7, description="Look-back window in days; 0 or less means all time"),
    status: str = Query("delivered", description="Order status or 'all'"),
    rank_by: str = Query("quantity", alias="rankBy", pattern="^(quantity|revenue)$"),
    limit: int = Query(5, ge=1, description="Capped server side"),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[TopItem]]:
    items = await reporting.get_top_items(
        db,
        days=days,
        status=parse_choice(OrderStatus, status, "status"),
        rank_by=rank_by,
        limit=min(limit, get_settings().top_items_max_limit),
    )
    return ApiResponse(
        message="Top items computed successfully",
        data=[TopItem(**item) for item in items],
    )


@router.get("/dashboard/stats", response_model=ApiResponse[dict[str, Any]], summary="Dashboard Statistics")
async def dashboard_stats(
    days: int = Query(30, ge=1, le=3650),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    stats = await reporting.get_dashboard_stats(db, days=days)
    return ApiResponse(message="Dashboard statistics retrieved successfully", data=stats)


@router.get("/dashboard/recent-activity", response_model=ApiResponse[dict[str, Any]], summary="Recent Activity")
async def recent_activity(
    limit: int = Query(20, ge=1, le=100),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    activity = await reporting.get_recent_activity(db, limit=limit)
    return ApiResponse(message="Recent activity retrieved successfully", data=activity)


# =============================================================================
# ANALYTICS
# =============================================================================

@router.get("/analytics/orders", response_model=ApiResponse[dict[str, Any]], summary="Order Analytics")
async def order_analytics(
    days: int = Query(30, ge=1, le=3650),
    group_by: str = Query("day", alias="groupBy", pattern="^(hour|day|week|month)$"),
    status: Optional[str] = Query(None),
    order_type: Optional[str] = Query(None, alias="orderType"),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    analytics = await reporting.get_order_analytics(
        db,
        days=days,
        granularity=group_by,
        status=parse_choice(OrderStatus, status, "status"),
        order_type=parse_choice(OrderType, order_type, "order type"),
    )
    return ApiResponse(message="Order analytics retrieved successfully", data=analytics)


@router.get("/analytics/menu", response_model=ApiResponse[dict[str, Any]], summary="Menu Analytics")
async def menu_analytics(
    category: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=3650),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    analytics = await reporting.get_menu_analytics(
        db, category=None if category == "all" else category, days=days
    )
    return ApiResponse(message="Menu analytics retrieved successfully", data=analytics)


@router.get("/analytics/performance", response_model=ApiResponse[dict[str, Any]], summary="Performance Metrics")
async def performance_metrics(
    period: str = Query("month", pattern="^(today|yesterday|week|month|quarter|year)$"),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    metrics = await reporting.get_performance_metrics(db, period=period)
    return ApiResponse(message="Performance metrics retrieved successfully", data=metrics)


@router.get("/analytics/customers", response_model=ApiResponse[List[dict[str, Any]]], summary="Repeat Customers")
async def customer_insights(
    days: int = Query(30, ge=1, le=3650),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[dict[str, Any]]]:
    insights = await reporting.get_customer_insights(db, days=days)
    return ApiResponse(message="Customer insights retrieved successfully", data=insights)


@router.get("/analytics/inventory", response_model=ApiResponse[dict[str, Any]], summary="Inventory Alerts")
async def inventory_alerts(
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[dict[str, Any]]:
    alerts = await reporting.get_inventory_alerts(db)
    return ApiResponse(message="Inventory alerts retrieved successfully", data=alerts)


@router.get("/analytics/status-flow", response_model=ApiResponse[List[dict[str, Any]]], summary="Order Status Flow")
async def status_flow(
    days: int = Query(30, ge=1, le=3650),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[dict[str, Any]]]:
    flow = await reporting.get_status_flow(db, days=days)
    return ApiResponse(message="Order status flow retrieved successfully", data=flow)


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@router.get("/notifications/count", response_model=ApiResponse[NotificationCount], summary="Notification Count")
async def notification_count(
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[NotificationCount]:
    counts = await reporting.get_notification_count(db)
    logger.debug(f"Notification count for admin #{identity.id}: {counts['count']}")
    return ApiResponse(message="Notification count retrieved successfully", data=NotificationCount(**counts))


@router.get("/notifications", response_model=ApiResponse[NotificationList], summary="Notifications")
async def notifications(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[NotificationList]:
    entries = await reporting.get_notifications(db, limit=limit, offset=offset)
    items = [
        Notification(**{**entry, "order": OrderResponse.model_validate(entry["order"])})
        for entry in entries
    ]
    return ApiResponse(
        message="Notifications retrieved successfully",
        data=NotificationList(notifications=items, total=len(items)),
    )

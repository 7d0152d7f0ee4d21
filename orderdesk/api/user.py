"""
Customer Endpoints

Registration, login and profile for customers, plus checkout and the
customer's own order history.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.deps import Identity, get_current_user, rate_limited
from orderdesk.api.orders import to_order_page
from orderdesk.core.exceptions import Unauthenticated
from orderdesk.core.security import TokenService, get_token_service
from orderdesk.database import get_db
from orderdesk.models import Order, OrderStatus
from orderdesk.schemas import (
    ApiResponse,
    ErrorResponse,
    LoginRequest,
    OrderCreate,
    OrderPage,
    OrderResponse,
    UserAuthResponse,
    UserProfileUpdate,
    UserRegister,
    UserResponse,
)
from orderdesk.services import accounts
from orderdesk.services import orders as order_service
from orderdesk.tasks import export_order_to_excel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["Customer"])


def queue_order_export(order: Order) -> None:
    """Hand the new order to the Excel ledger worker; the order is already saved."""
    try:
        export_order_to_excel.delay(order_service.order_export_payload(order))
    except Exception as e:
        logger.error(f"Could not queue Excel export for order #{order.id}: {e}")


@router.post(
    "/register",
    response_model=ApiResponse[UserAuthResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Register Customer",
)
async def register_user(
    data: UserRegister,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> ApiResponse[UserAuthResponse]:
    user, token = await accounts.register_user(db, data, tokens)
    return ApiResponse(
        message="User registered successfully",
        data=UserAuthResponse(token=token, identity=UserResponse.model_validate(user)),
    )


@router.post(
    "/login",
    response_model=ApiResponse[UserAuthResponse],
    responses={401: {"model": ErrorResponse}},
    summary="Customer Login",
)
async def login_user(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> ApiResponse[UserAuthResponse]:
    user, token = await accounts.login_user(db, data, tokens)
    return ApiResponse(
        message="Login successful",
        data=UserAuthResponse(token=token, identity=UserResponse.model_validate(user)),
    )


@router.get("/profile", response_model=ApiResponse[UserResponse], summary="Current Customer Profile")
async def get_profile(
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    user = await accounts.get_user(db, identity.id)
    if user is None:
        raise Unauthenticated("Invalid token.")
    return ApiResponse(message="Profile retrieved successfully", data=UserResponse.model_validate(user))


@router.put("/profile", response_model=ApiResponse[UserResponse], summary="Update Customer Profile")
async def update_profile(
    data: UserProfileUpdate,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[UserResponse]:
    user = await accounts.update_user_profile(db, identity.id, data)
    return ApiResponse(message="Profile updated successfully", data=UserResponse.model_validate(user))


# =============================================================================
# ORDERS
# =============================================================================

@router.post(
    "/orders",
    response_model=ApiResponse[OrderResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    summary="Place Order",
)
async def place_order(
    data: OrderCreate,
    identity: Identity = Depends(rate_limited("orders", get_current_user)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderResponse]:
    customer = await accounts.get_user(db, identity.id)
    order = await order_service.create_order(db, customer, data)

    queue_order_export(order)

    return ApiResponse(message="Order placed successfully!", data=OrderResponse.model_validate(order))


@router.get("/orders", response_model=ApiResponse[OrderPage], summary="My Orders")
async def list_my_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(20),
    offset: int = Query(0),
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderPage]:
    criteria = order_service.OrderFilter(
        status=order_service.parse_choice(OrderStatus, status_filter, "status"),
        user_id=identity.id,
        limit=limit,
        offset=offset,
    )
    page = await order_service.list_orders(db, criteria)
    return ApiResponse(message="Orders retrieved successfully", data=to_order_page(page))


@router.get(
    "/orders/{order_id}",
    response_model=ApiResponse[OrderResponse],
    responses={404: {"model": ErrorResponse}},
    summary="My Order",
)
async def get_my_order(
    order_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderResponse]:
    order = await order_service.get_order(db, order_id, user_id=identity.id)
    return ApiResponse(message="Order retrieved successfully", data=OrderResponse.model_validate(order))


@router.put(
    "/orders/{order_id}/cancel",
    response_model=ApiResponse[OrderResponse],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Cancel My Order",
)
async def cancel_my_order(
    order_id: int = Path(..., ge=1),
    identity: Identity = Depends(rate_limited("orders", get_current_user)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[OrderResponse]:
    order = await order_service.cancel_order(db, order_id, requesting_user_id=identity.id)
    return ApiResponse(message="Order cancelled successfully", data=OrderResponse.model_validate(order))

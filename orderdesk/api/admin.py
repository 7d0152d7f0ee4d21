"""
Admin Account Endpoints

Registration and login for dashboard staff, the admin profile and
activation of admin accounts by a super admin.
"""

import logging

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.deps import Identity, any_admin, rate_limited, super_admin
from orderdesk.core.exceptions import Unauthenticated
from orderdesk.core.security import TokenService, get_token_service
from orderdesk.database import get_db
from orderdesk.schemas import (
    AdminAuthResponse,
    AdminRegister,
    AdminResponse,
    AdminStatusUpdate,
    ApiResponse,
    ErrorResponse,
    LoginRequest,
)
from orderdesk.services import accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/register",
    response_model=ApiResponse[AdminAuthResponse],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Register Admin",
)
async def register_admin(
    data: AdminRegister,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> ApiResponse[AdminAuthResponse]:
    admin, token = await accounts.register_admin(db, data, tokens)
    return ApiResponse(
        message="Admin registered successfully",
        data=AdminAuthResponse(token=token, identity=AdminResponse.model_validate(admin)),
    )


@router.post(
    "/login",
    response_model=ApiResponse[AdminAuthResponse],
    responses={401: {"model": ErrorResponse}},
    summary="Admin Login",
)
async def login_admin(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> ApiResponse[AdminAuthResponse]:
    admin, token = await accounts.login_admin(db, data, tokens)
    return ApiResponse(
        message="Login successful",
        data=AdminAuthResponse(token=token, identity=AdminResponse.model_validate(admin)),
    )


@router.get(
    "/profile",
    response_model=ApiResponse[AdminResponse],
    summary="Current Admin Profile",
)
async def get_admin_profile(
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[AdminResponse]:
    admin = await accounts.get_admin(db, identity.id)
    if admin is None:
        raise Unauthenticated("Invalid token.")
    return ApiResponse(
        message="Admin profile retrieved successfully",
        data=AdminResponse.model_validate(admin),
    )


@router.put(
    "/admins/{admin_id}/status",
    response_model=ApiResponse[AdminResponse],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Activate or Deactivate an Admin",
)
async def set_admin_status(
    data: AdminStatusUpdate,
    admin_id: int = Path(..., ge=1),
    identity: Identity = Depends(rate_limited("admin", super_admin)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[AdminResponse]:
    admin = await accounts.set_admin_active(db, admin_id, data.is_active, acting_admin_id=identity.id)
    return ApiResponse(
        message=f"Admin {'activated' if admin.is_active else 'deactivated'} successfully",
        data=AdminResponse.model_validate(admin),
    )

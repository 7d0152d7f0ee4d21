"""
Menu Endpoints

Public menu for customers and catalog management for admins.
"""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.api.deps import Identity, any_admin, rate_limited, super_admin
from orderdesk.database import get_db
from orderdesk.schemas import (
    ApiResponse,
    ErrorResponse,
    MenuItemCreate,
    MenuItemPage,
    MenuItemResponse,
    MenuItemUpdate,
    MenuItemWithStats,
    Pagination,
)
from orderdesk.services import menu, reporting

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Menu"])


@router.get(
    "/menu-items",
    response_model=ApiResponse[List[MenuItemResponse]],
    summary="Public Menu",
)
async def list_menu(
    category: Optional[str] = Query(None, description="Only this category ('all' for every category)"),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[MenuItemResponse]]:
    """Available menu items, for the ordering page."""
    items = await menu.list_available_items(db, category=category)
    return ApiResponse(
        message="Menu items retrieved successfully",
        data=[MenuItemResponse.model_validate(item) for item in items],
    )


@router.get(
    "/admin/menu-items",
    response_model=ApiResponse[List[MenuItemResponse]],
    summary="All Menu Items (Admin)",
)
async def list_all_menu_items(
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[List[MenuItemResponse]]:
    items = await menu.list_all_items(db)
    return ApiResponse(
        message="Menu items retrieved successfully",
        data=[MenuItemResponse.model_validate(item) for item in items],
    )


@router.get(
    "/admin/menu-items/stats",
    response_model=ApiResponse[MenuItemPage],
    summary="Menu Items with Sales Statistics",
)
async def list_menu_items_with_stats(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    identity: Identity = Depends(any_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[MenuItemPage]:
    page = await reporting.get_menu_items_with_stats(
        db,
        category=None if category == "all" else category,
        search=search,
        sort_by=sort_by,
        sort_dir=order,
        limit=limit,
        offset=offset,
    )
    return ApiResponse(
        message="Menu items with statistics retrieved successfully",
        data=MenuItemPage(
            items=[
                MenuItemWithStats(
                    **MenuItemResponse.model_validate(entry["item"]).model_dump(),
                    stats=entry["stats"],
                )
                for entry in page["items"]
            ],
            pagination=Pagination(**page["pagination"]),
        ),
    )


@router.post(
    "/admin/menu-items",
    response_model=ApiResponse[MenuItemResponse],
    status_code=201,
    summary="Create Menu Item",
)
async def create_menu_item(
    data: MenuItemCreate,
    identity: Identity = Depends(rate_limited("admin", any_admin)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[MenuItemResponse]:
    item = await menu.create_item(db, data)
    return ApiResponse(message="Menu item created successfully", data=MenuItemResponse.model_validate(item))


@router.put(
    "/admin/menu-items/{item_id}",
    response_model=ApiResponse[MenuItemResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Update Menu Item",
)
async def update_menu_item(
    data: MenuItemUpdate,
    item_id: int = Path(..., ge=1),
    identity: Identity = Depends(rate_limited("admin", any_admin)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[MenuItemResponse]:
    item = await menu.update_item(db, item_id, data)
    return ApiResponse(message="Menu item updated successfully", data=MenuItemResponse.model_validate(item))


@router.delete(
    "/admin/menu-items/{item_id}",
    response_model=ApiResponse[Any],
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete Menu Item",
)
async def delete_menu_item(
    item_id: int = Path(..., ge=1),
    identity: Identity = Depends(rate_limited("admin", super_admin)),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Any]:
    await menu.delete_item(db, item_id)
    return ApiResponse(message="Menu item deleted successfully", data={"id": item_id})

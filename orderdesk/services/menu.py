"""
Menu Service

Catalog management for admins and the public menu listing for customers.
Deleting a menu item never touches past orders: their line items are
snapshots.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import NotFound, ValidationError
from orderdesk.models import MenuItem
from orderdesk.schemas import MenuItemCreate, MenuItemUpdate

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("name", "description", "price", "category", "rating", "popular", "is_available")


async def list_available_items(db: AsyncSession, category: Optional[str] = None) -> list[MenuItem]:
    """Menu shown to customers: available items only, grouped by category."""
    query = select(MenuItem).where(MenuItem.is_available.is_(True))
    if category and category != "all":
        query = query.where(MenuItem.category == category)
    result = await db.execute(query.order_by(MenuItem.category, MenuItem.name, MenuItem.id))
    return list(result.scalars().all())


async def list_all_items(db: AsyncSession) -> list[MenuItem]:
    result = await db.execute(select(MenuItem).order_by(MenuItem.created_at.desc(), MenuItem.id.desc()))
    return list(result.scalars().all())


async def get_item(db: AsyncSession, item_id: int) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFound.for_resource("Menu item", item_id)
    return item


async def create_item(db: AsyncSession, data: MenuItemCreate) -> MenuItem:
    item = MenuItem(**data.model_dump())
    item.name = item.name.strip()
    item.category = item.category.strip().lower()
    db.add(item)
    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item #{item.id} created: {item.name} ({item.category}, {item.price:.2f})")
    return item


async def update_item(db: AsyncSession, item_id: int, data: MenuItemUpdate) -> MenuItem:
    """
    Apply a partial update.

    Raises:
        NotFound: If the item does not exist
        ValidationError: If a required field is explicitly set to null
    """
    item = await get_item(db, item_id)

    update_data = data.model_dump(exclude_unset=True)
    nulled = [name for name in NON_NULLABLE_FIELDS if name in update_data and update_data[name] is None]
    if nulled:
        raise ValidationError(f"Fields cannot be null: {nulled}")

    if "category" in update_data:
        update_data["category"] = update_data["category"].strip().lower()
    for name, value in update_data.items():
        setattr(item, name, value)

    await db.commit()
    await db.refresh(item)

    logger.info(f"Menu item #{item_id} updated: {sorted(update_data)}")
    return item


async def delete_item(db: AsyncSession, item_id: int) -> None:
    item = await get_item(db, item_id)
    await db.delete(item)
    await db.commit()
    logger.info(f"Menu item #{item_id} deleted")

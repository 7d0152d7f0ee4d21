"""
Order Service

The order aggregate: checkout, the status state machine, cancellation by
the owning customer, and filtered/paginated listing.

Status workflow:

    pending ─► confirmed ─► preparing ─► ready ─► delivered
       │           │            │          │
       └───────────┴────────────┴──────────┴────► cancelled

``delivered`` and ``cancelled`` are terminal. Re-applying the current
status is accepted as a no-op so retries are harmless.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from orderdesk.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from orderdesk.models import MenuItem, Order, OrderStatus, OrderType, User, as_utc, utcnow
from orderdesk.schemas import OrderCreate

logger = logging.getLogger(__name__)


# =============================================================================
# STATE MACHINE
# =============================================================================

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def check_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """
    Validate a status change.

    Returns:
        True if the status changes, False for a same-status no-op

    Raises:
        InvalidTransition: If the table does not allow ``current -> new``
    """
    if current == new:
        return False
    if new not in ALLOWED_TRANSITIONS[current]:
        allowed = sorted(s.value for s in ALLOWED_TRANSITIONS[current])
        raise InvalidTransition(
            f"Cannot change order status from '{current.value}' to '{new.value}'",
            data={"current": current.value, "requested": new.value, "allowed": allowed},
        )
    return True


# =============================================================================
# CHECKOUT
# =============================================================================

def _money(value: float) -> float:
    return round(float(value), 2)


async def snapshot_line_items(db: AsyncSession, data: OrderCreate) -> list[dict[str, Any]]:
    """
    Copy name and price of each ordered menu item into order line items.

    Repeated menu item ids are merged into one line.

    Raises:
        ValidationError: Empty cart, non-positive quantity, unknown or
            unavailable menu item
    """
    if not data.items:
        raise ValidationError("Order must contain at least one item")

    quantities: dict[int, int] = {}
    for item in data.items:
        if item.quantity <= 0:
            raise ValidationError(f"Quantity for item {item.id} must be greater than 0")
        quantities[item.id] = quantities.get(item.id, 0) + item.quantity

    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(list(quantities))))
    catalog = {menu_item.id: menu_item for menu_item in result.scalars()}

    missing = [item_id for item_id in quantities if item_id not in catalog]
    if missing:
        raise ValidationError(f"Unknown menu items: {missing}", data={"missing": missing})

    unavailable = [item_id for item_id in quantities if not catalog[item_id].is_available]
    if unavailable:
        raise ValidationError(
            f"Menu items not available: {unavailable}", data={"unavailable": unavailable}
        )

    return [
        {
            "id": item_id,
            "name": catalog[item_id].name,
            "price": _money(catalog[item_id].price),
            "quantity": quantity,
        }
        for item_id, quantity in quantities.items()
    ]


def calculate_total(line_items: list[dict[str, Any]]) -> float:
    return _money(sum(item["price"] * item["quantity"] for item in line_items))


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def create_order(db: AsyncSession, customer: Optional[User], data: OrderCreate) -> Order:
    """
    Check out a cart for a customer.

    Line items are a snapshot of the menu at this moment, and
    ``total_amount`` is computed from that snapshot once.

    Raises:
        Unauthenticated: If no customer is given
        ValidationError: On invalid items or missing table/address
    """
    if customer is None:
        raise Unauthenticated()

    table_number = _clean(data.table_number)
    delivery_address = _clean(data.delivery_address)

    if data.order_type == OrderType.DINE_IN:
        if not table_number:
            raise ValidationError("Table number is required for dine-in orders")
        delivery_address = None
    else:
        if not delivery_address:
            raise ValidationError("Delivery address is required for delivery orders")
        table_number = None

    customer_name = _clean(data.customer_name) or customer.name
    if not customer_name:
        raise ValidationError("Customer name is required")

    line_items = await snapshot_line_items(db, data)

    order = Order(
        user_id=customer.id,
        items=line_items,
        total_amount=calculate_total(line_items),
        status=OrderStatus.PENDING,
        order_type=data.order_type,
        table_number=table_number,
        delivery_address=delivery_address,
        customer_name=customer_name,
        customer_phone=_clean(data.customer_phone) or customer.phone,
        order_notes=_clean(data.order_notes),
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)

    logger.info(
        f"Order #{order.id} created for user #{customer.id} "
        f"({order.order_type.value}, {len(line_items)} lines, total={order.total_amount:.2f})"
    )
    return order


# =============================================================================
# STATUS CHANGES
# =============================================================================

async def get_order(db: AsyncSession, order_id: int, user_id: Optional[int] = None) -> Order:
    """
    Load an order, optionally scoped to its owner.

    Raises:
        NotFound: If the order does not exist (or belongs to someone else)
    """
    order = await db.get(Order, order_id)
    if order is None or (user_id is not None and order.user_id != user_id):
        raise NotFound.for_resource("Order", order_id)
    return order


async def _apply_status(db: AsyncSession, order: Order, new_status: OrderStatus) -> Order:
    previous = order.status
    if not check_transition(previous, new_status):
        logger.info(f"Order #{order.id} already '{new_status.value}', nothing to do")
        return order

    # Rollback expires the instance, so keep the id for logging.
    order_id = order.id
    order.status = new_status
    order.updated_at = utcnow()
    try:
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning(f"Concurrent update detected on order #{order_id}")
        raise Conflict("Order was modified by another request, please retry")
    await db.refresh(order)

    logger.info(f"Order #{order_id} status: {previous.value} -> {new_status.value}")
    return order


async def update_status(db: AsyncSession, order_id: int, new_status: OrderStatus) -> Order:
    """
    Move an order to a new status (admin action).

    Raises:
        NotFound: If the order does not exist
        InvalidTransition: If the transition table forbids the change
        Conflict: If another request updated the order concurrently
    """
    order = await get_order(db, order_id)
    return await _apply_status(db, order, new_status)


async def cancel_order(db: AsyncSession, order_id: int, requesting_user_id: int) -> Order:
    """
    Cancel an order on behalf of the customer who placed it.

    Raises:
        NotFound: If the order does not exist
        Forbidden: If the order belongs to another customer
        InvalidTransition: If the order is already delivered
    """
    order = await get_order(db, order_id)
    if order.user_id != requesting_user_id:
        logger.warning(f"User #{requesting_user_id} tried to cancel order #{order_id} of another user")
        raise Forbidden("You can only cancel your own orders")
    return await _apply_status(db, order, OrderStatus.CANCELLED)


# =============================================================================
# LISTING
# =============================================================================

SORTABLE_COLUMNS = {
    "id": Order.id,
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "order_type": Order.order_type,
    "customer_name": Order.customer_name,
}

MAX_PAGE_SIZE = 100


def parse_choice(enum_cls, value: Optional[str], field_name: str):
    """
    Turn a query string filter into an enum member.

    ``None``, empty and ``"all"`` mean no filter and give ``None``.

    Raises:
        ValidationError: If the value is not a member of ``enum_cls``
    """
    if value is None or not value.strip() or value.strip().lower() == "all":
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid {field_name}. Options: {['all'] + [member.value for member in enum_cls]}"
        )


@dataclass
class OrderFilter:
    """Criteria for listing orders. ``None`` means "do not filter"."""
    status: Optional[OrderStatus] = None
    order_type: Optional[OrderType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    user_id: Optional[int] = None
    sort_by: str = "created_at"
    sort_dir: str = "desc"
    limit: int = 50
    offset: int = 0

    def __post_init__(self):
        if self.sort_by not in SORTABLE_COLUMNS:
            raise ValidationError(
                f"Cannot sort by '{self.sort_by}'. Options: {sorted(SORTABLE_COLUMNS)}"
            )
        self.sort_dir = self.sort_dir.lower()
        if self.sort_dir not in ("asc", "desc"):
            raise ValidationError("Sort direction must be 'asc' or 'desc'")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.offset < 0:
            raise ValidationError("Offset cannot be negative")
        if self.date_from and self.date_to and as_utc(self.date_from) > as_utc(self.date_to):
            raise ValidationError("date_from must not be after date_to")


def build_order_query(criteria: OrderFilter) -> tuple[Select, Select]:
    """
    Compile filter criteria into a page query and a matching count query.
    """
    conditions = []

    if criteria.status is not None:
        conditions.append(Order.status == criteria.status)
    if criteria.order_type is not None:
        conditions.append(Order.order_type == criteria.order_type)
    if criteria.date_from is not None:
        conditions.append(Order.created_at >= as_utc(criteria.date_from))
    if criteria.date_to is not None:
        conditions.append(Order.created_at <= as_utc(criteria.date_to))
    if criteria.user_id is not None:
        conditions.append(Order.user_id == criteria.user_id)

    search = (criteria.search or "").strip()
    if search:
        pattern = f"%{search}%"
        matches = [Order.customer_name.ilike(pattern), Order.customer_phone.ilike(pattern)]
        if search.isdigit():
            matches.append(Order.id == int(search))
        conditions.append(or_(*matches))

    column = SORTABLE_COLUMNS[criteria.sort_by]
    ordering = column.asc() if criteria.sort_dir == "asc" else column.desc()

    page_query = (
        select(Order)
        .where(*conditions)
        .order_by(ordering, Order.id.desc())
        .offset(criteria.offset)
        .limit(criteria.limit)
    )
    count_query = select(func.count(Order.id)).where(*conditions)
    return page_query, count_query


@dataclass
class OrderPage:
    orders: list[Order] = field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


async def list_orders(db: AsyncSession, criteria: OrderFilter) -> OrderPage:
    """Return one page of orders plus the total number of matches."""
    page_query, count_query = build_order_query(criteria)

    total = (await db.execute(count_query)).scalar() or 0
    orders = list((await db.execute(page_query)).scalars().all())

    return OrderPage(orders=orders, total=total, limit=criteria.limit, offset=criteria.offset)


# =============================================================================
# EXPORT
# =============================================================================

def order_export_payload(order: Order) -> dict[str, Any]:
    """Flatten an order into the row format of the Excel ledger."""
    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "order_type": order.order_type.value,
        "customer_name": order.customer_name,
        "customer_phone": order.customer_phone,
        "table_number": order.table_number,
        "delivery_address": order.delivery_address,
        "items": order.items,
        "item_count": len(order.items),
        "order_notes": order.order_notes,
        "total_amount": order.total_amount,
        "order_status": order.status.value,
        "created_at": as_utc(order.created_at).isoformat(),
    }

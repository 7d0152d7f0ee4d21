"""
Reporting Service

Read-only aggregates for the admin dashboard.

Orders carry their line items as a JSON snapshot, so every per-item figure
(top items, category performance, menu item stats) is computed by decoding
each order's item list and folding it in Python rather than by joining
against the live catalog. Time bucketing is done the same way, which keeps
the numbers identical on PostgreSQL and SQLite.

Revenue never includes cancelled orders.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.config import get_settings
from orderdesk.core.exceptions import ValidationError
from orderdesk.models import MenuItem, Order, OrderStatus, OrderType, as_utc, utcnow

logger = logging.getLogger(__name__)

RANK_KEYS = ("quantity", "revenue")
GRANULARITIES = ("hour", "day", "week", "month")
PERIODS = ("today", "yesterday", "week", "month", "quarter", "year")
GROUP_KEYS = ("status", "order_type")

RECENT_NOTIFICATION_CAP = 5
NOTIFICATION_WINDOW = timedelta(hours=24)
INVENTORY_DEMAND_WINDOW = timedelta(days=7)
MENU_STATS_WINDOW_DAYS = 30
REPEAT_CUSTOMER_LIMIT = 20


# =============================================================================
# PURE FOLDS
# =============================================================================

def _round(value: float) -> float:
    return round(value, 2)


def _counts_for_revenue(order) -> bool:
    return order.status != OrderStatus.CANCELLED


def decode_line_items(raw: Any) -> list[dict[str, Any]]:
    """
    Decode an order's embedded item list into ``{id, name, price, quantity}``
    dicts. Entries without a usable id are skipped; missing quantity or price
    count as zero.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Skipping order with undecodable line items")
            return []
    if not isinstance(raw, list):
        return []

    decoded = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        try:
            item_id = int(entry["id"])
        except (KeyError, TypeError, ValueError):
            continue
        try:
            quantity = int(entry.get("quantity") or 0)
        except (TypeError, ValueError):
            quantity = 0
        try:
            price = float(entry.get("price") or 0)
        except (TypeError, ValueError):
            price = 0.0
        decoded.append({
            "id": item_id,
            "name": entry.get("name") or f"Item {item_id}",
            "price": price,
            "quantity": quantity,
        })
    return decoded


def summarize_revenue(orders: Iterable) -> dict[str, Any]:
    """Order count, revenue and average order value over non-cancelled orders."""
    count = 0
    revenue = 0.0
    for order in orders:
        if not _counts_for_revenue(order):
            continue
        count += 1
        revenue += order.total_amount or 0.0

    return {
        "order_count": count,
        "total_revenue": _round(revenue),
        "average_order_value": _round(revenue / count) if count else 0.0,
    }


def group_orders(orders: Iterable, key: str) -> list[dict[str, Any]]:
    """
    Count orders per ``status`` or ``order_type``.

    Every order is counted; cancelled orders add nothing to revenue.
    """
    if key not in GROUP_KEYS:
        raise ValidationError(f"Cannot group orders by '{key}'. Options: {list(GROUP_KEYS)}")

    groups: dict[str, dict[str, Any]] = {}
    for order in orders:
        value = getattr(order, key).value
        group = groups.setdefault(value, {key: value, "count": 0, "revenue": 0.0})
        group["count"] += 1
        if _counts_for_revenue(order):
            group["revenue"] += order.total_amount or 0.0

    for group in groups.values():
        group["revenue"] = _round(group["revenue"])
    return sorted(groups.values(), key=lambda g: (-g["count"], g[key]))


def bucket_key(timestamp: datetime, granularity: str) -> str:
    ts = as_utc(timestamp)
    if granularity == "hour":
        return ts.strftime("%Y-%m-%d %H:00")
    if granularity == "day":
        return ts.strftime("%Y-%m-%d")
    if granularity == "week":
        year, week, _ = ts.isocalendar()
        return f"{year}-W{week:02d}"
    if granularity == "month":
        return ts.strftime("%Y-%m")
    raise ValidationError(f"Unknown granularity '{granularity}'. Options: {list(GRANULARITIES)}")


def bucket_orders(orders: Iterable, granularity: str = "day") -> list[dict[str, Any]]:
    """Order count and revenue per time bucket, oldest bucket first."""
    if granularity not in GRANULARITIES:
        raise ValidationError(f"Unknown granularity '{granularity}'. Options: {list(GRANULARITIES)}")

    buckets: dict[str, dict[str, Any]] = {}
    for order in orders:
        period = bucket_key(order.created_at, granularity)
        bucket = buckets.setdefault(period, {"period": period, "count": 0, "revenue": 0.0, "_paid": 0})
        bucket["count"] += 1
        if _counts_for_revenue(order):
            bucket["revenue"] += order.total_amount or 0.0
            bucket["_paid"] += 1

    result = []
    for period in sorted(buckets):
        bucket = buckets[period]
        paid = bucket.pop("_paid")
        bucket["average_order_value"] = _round(bucket["revenue"] / paid) if paid else 0.0
        bucket["revenue"] = _round(bucket["revenue"])
        result.append(bucket)
    return result


def peak_hours(orders: Iterable) -> list[dict[str, int]]:
    """Orders per hour of day (UTC), busiest hour first."""
    counts: dict[int, int] = defaultdict(int)
    for order in orders:
        counts[as_utc(order.created_at).hour] += 1
    return [
        {"hour": hour, "count": count}
        for hour, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def fold_item_totals(orders: Iterable) -> dict[int, dict[str, Any]]:
    """
    Accumulate per menu item totals across orders.

    Returns:
        ``{item_id: {id, name, order_count, total_quantity, total_revenue}}``
        with ``name`` taken from the first order that mentions the item.
    """
    totals: dict[int, dict[str, Any]] = {}
    for order in orders:
        seen_in_order = set()
        for line in decode_line_items(order.items):
            entry = totals.setdefault(line["id"], {
                "id": line["id"],
                "name": line["name"],
                "order_count": 0,
                "total_quantity": 0,
                "total_revenue": 0.0,
            })
            entry["total_quantity"] += line["quantity"]
            entry["total_revenue"] += line["quantity"] * line["price"]
            if line["id"] not in seen_in_order:
                entry["order_count"] += 1
                seen_in_order.add(line["id"])
    return totals


def rank_top_items(orders: Iterable, rank_by: str = "quantity", limit: int = 5) -> list[dict[str, Any]]:
    """
    Rank menu items by total quantity or total revenue across ``orders``.

    The limit is clamped to ``[1, top_items_max_limit]``. Ties keep the lower
    item id first.
    """
    if rank_by not in RANK_KEYS:
        raise ValidationError(f"Cannot rank by '{rank_by}'. Options: {list(RANK_KEYS)}")

    cap = get_settings().top_items_max_limit
    limit = max(1, min(limit, cap))

    ranked = [
        {
            "id": entry["id"],
            "name": entry["name"],
            "total_quantity": entry["total_quantity"],
            "total_revenue": _round(entry["total_revenue"]),
        }
        for entry in fold_item_totals(orders).values()
    ]
    sort_field = "total_quantity" if rank_by == "quantity" else "total_revenue"
    ranked.sort(key=lambda entry: (-entry[sort_field], entry["id"]))
    return ranked[:limit]


def time_ago(now: datetime, timestamp: datetime) -> str:
    """Human friendly elapsed time: "just now", "5m ago", "3h ago", "2d ago"."""
    elapsed = as_utc(now) - as_utc(timestamp)
    minutes = int(elapsed.total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def percent_growth(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return _round((current - previous) / previous * 100)


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def previous(self) -> "DateRange":
        """The range of the same length ending where this one starts."""
        return DateRange(start=self.start - (self.end - self.start), end=self.start)


def _add_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    return moment.replace(year=moment.year + index // 12, month=index % 12 + 1)


def period_range(period: str, now: Optional[datetime] = None) -> DateRange:
    """
    Calendar range for a reporting period, in UTC.

    ``week`` is the trailing seven days; the others are calendar units
    containing ``now``.
    """
    now = as_utc(now or utcnow())
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == "today":
        return DateRange(today, today + timedelta(days=1))
    if period == "yesterday":
        return DateRange(today - timedelta(days=1), today)
    if period == "week":
        return DateRange(now - timedelta(days=7), now)
    if period == "month":
        start = today.replace(day=1)
        return DateRange(start, _add_months(start, 1))
    if period == "quarter":
        start = today.replace(day=1, month=(today.month - 1) // 3 * 3 + 1)
        return DateRange(start, _add_months(start, 3))
    if period == "year":
        start = today.replace(month=1, day=1)
        return DateRange(start, start.replace(year=start.year + 1))
    raise ValidationError(f"Unknown period '{period}'. Options: {list(PERIODS)}")


# =============================================================================
# QUERIES
# =============================================================================

async def _load_orders(
    db: AsyncSession,
    since: Optional[datetime] = None,
    until: Optional[datetime] = None,
    status: Optional[OrderStatus] = None,
    order_type: Optional[OrderType] = None,
    exclude_cancelled: bool = False,
) -> list[Order]:
    query = select(Order)
    if since is not None:
        query = query.where(Order.created_at >= since)
    if until is not None:
        query = query.where(Order.created_at < until)
    if status is not None:
        query = query.where(Order.status == status)
    if order_type is not None:
        query = query.where(Order.order_type == order_type)
    if exclude_cancelled:
        query = query.where(Order.status != OrderStatus.CANCELLED)
    result = await db.execute(query.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


def _since_days(days: int, now: datetime) -> Optional[datetime]:
    return now - timedelta(days=days) if days > 0 else None


async def get_top_items(
    db: AsyncSession,
    days: int = 7,
    status: Optional[OrderStatus] = OrderStatus.DELIVERED,
    rank_by: str = "quantity",
    limit: int = 5,
    now: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """
    Best selling items over the last ``days`` days (``days <= 0`` means all
    time) among orders with ``status`` (``None`` means any status).
    """
    now = now or utcnow()
    orders = await _load_orders(db, since=_since_days(days, now), status=status)
    return rank_top_items(orders, rank_by=rank_by, limit=limit)


async def _category_stats(db: AsyncSession, orders: list[Order]) -> list[dict[str, Any]]:
    """Per-category performance; items no longer in the catalog are left out."""
    totals = fold_item_totals(o for o in orders if _counts_for_revenue(o))
    if not totals:
        return []

    result = await db.execute(select(MenuItem.id, MenuItem.category).where(MenuItem.id.in_(list(totals))))
    category_of = dict(result.all())

    categories: dict[str, dict[str, Any]] = {}
    order_ids: dict[str, set[int]] = defaultdict(set)
    for order in orders:
        if not _counts_for_revenue(order):
            continue
        for line in decode_line_items(order.items):
            category = category_of.get(line["id"])
            if category is None:
                continue
            entry = categories.setdefault(category, {
                "category": category, "order_count": 0, "total_quantity": 0, "total_revenue": 0.0,
            })
            entry["total_quantity"] += line["quantity"]
            entry["total_revenue"] += line["quantity"] * line["price"]
            order_ids[category].add(order.id)

    for category, entry in categories.items():
        entry["order_count"] = len(order_ids[category])
        entry["total_revenue"] = _round(entry["total_revenue"])
    return sorted(categories.values(), key=lambda e: -e["total_revenue"])


async def get_dashboard_stats(db: AsyncSession, days: int = 30, now: Optional[datetime] = None) -> dict[str, Any]:
    """Headline numbers for the admin dashboard over the last ``days`` days."""
    now = now or utcnow()
    orders = await _load_orders(db, since=_since_days(days, now))

    total_menu_items = (await db.execute(select(func.count(MenuItem.id)))).scalar() or 0
    active_menu_items = (
        await db.execute(select(func.count(MenuItem.id)).where(MenuItem.is_available.is_(True)))
    ).scalar() or 0

    revenue = summarize_revenue(orders)
    week_start = now - timedelta(days=7)
    last_week = [o for o in orders if as_utc(o.created_at) >= week_start and _counts_for_revenue(o)]

    return {
        "overview": {
            "total_orders": len(orders),
            "total_revenue": revenue["total_revenue"],
            "total_menu_items": total_menu_items,
            "active_menu_items": active_menu_items,
            "average_order_value": _round(revenue["total_revenue"] / len(orders)) if orders else 0.0,
        },
        "orders_by_status": group_orders(orders, "status"),
        "orders_by_type": group_orders(orders, "order_type"),
        "daily_revenue": [
            {"date": b["period"], "orders": b["count"], "revenue": b["revenue"]}
            for b in bucket_orders(last_week, "day")
        ],
        "peak_hours": peak_hours(orders),
        "category_stats": await _category_stats(db, orders),
    }


async def get_order_analytics(
    db: AsyncSession,
    days: int = 30,
    granularity: str = "day",
    status: Optional[OrderStatus] = None,
    order_type: Optional[OrderType] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Order trend per time bucket plus status and type distributions."""
    if granularity not in GRANULARITIES:
        raise ValidationError(f"Unknown granularity '{granularity}'. Options: {list(GRANULARITIES)}")

    now = now or utcnow()
    since = _since_days(days, now)
    filtered = await _load_orders(db, since=since, status=status, order_type=order_type)
    everything = await _load_orders(db, since=since)

    return {
        "trends": bucket_orders(filtered, granularity),
        "status_distribution": group_orders(everything, "status"),
        "type_distribution": group_orders(everything, "order_type"),
    }


async def get_menu_analytics(
    db: AsyncSession,
    category: Optional[str] = None,
    days: int = 30,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Sales per menu item over the last ``days`` days, best seller first."""
    now = now or utcnow()

    query = select(MenuItem).order_by(MenuItem.created_at.desc())
    if category:
        query = query.where(MenuItem.category == category)
    menu_items = list((await db.execute(query)).scalars().all())

    orders = await _load_orders(db, since=_since_days(days, now), exclude_cancelled=True)

    history: dict[int, dict[str, dict[str, Any]]] = defaultdict(dict)
    for order in orders:
        day = bucket_key(order.created_at, "day")
        for line in decode_line_items(order.items):
            point = history[line["id"]].setdefault(
                day, {"date": day, "order_count": 0, "total_quantity": 0, "total_revenue": 0.0}
            )
            point["order_count"] += 1
            point["total_quantity"] += line["quantity"]
            point["total_revenue"] += line["quantity"] * line["price"]

    items = []
    for menu_item in menu_items:
        points = sorted(history.get(menu_item.id, {}).values(), key=lambda p: p["date"], reverse=True)
        for point in points:
            point["total_revenue"] = _round(point["total_revenue"])
        total_orders = sum(p["order_count"] for p in points)
        items.append({
            "id": menu_item.id,
            "name": menu_item.name,
            "category": menu_item.category,
            "price": menu_item.price,
            "is_available": menu_item.is_available,
            "analytics": {
                "total_orders": total_orders,
                "total_quantity": sum(p["total_quantity"] for p in points),
                "total_revenue": _round(sum(p["total_revenue"] for p in points)),
                "average_orders_per_day": _round(total_orders / len(points)) if points else 0.0,
                "performance_history": points,
            },
        })

    items.sort(key=lambda i: -i["analytics"]["total_revenue"])
    return {
        "items": items,
        "summary": {
            "total_items": len(items),
            "active_items": sum(1 for i in items if i["is_available"]),
            "top_performer": items[0] if items else None,
            "total_revenue": _round(sum(i["analytics"]["total_revenue"] for i in items)),
        },
    }


async def get_performance_metrics(
    db: AsyncSession, period: str = "month", now: Optional[datetime] = None
) -> dict[str, Any]:
    """Revenue figures for a period compared with the period just before it."""
    current_range = period_range(period, now)
    previous_range = current_range.previous()

    current = summarize_revenue(
        await _load_orders(db, since=current_range.start, until=current_range.end)
    )
    previous = summarize_revenue(
        await _load_orders(db, since=previous_range.start, until=previous_range.end)
    )

    return {
        "period": period,
        "range": {"start": current_range.start, "end": current_range.end},
        "current": current,
        "previous": previous,
        "growth": {key: percent_growth(current[key], previous[key]) for key in current},
    }


async def get_customer_insights(db: AsyncSession, days: int = 30, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Repeat customers (more than one order) ranked by total spend."""
    now = now or utcnow()
    orders = await _load_orders(db, since=_since_days(days, now), exclude_cancelled=True)

    customers: dict[str, dict[str, Any]] = {}
    for order in orders:
        entry = customers.setdefault(
            order.customer_name, {"customer_name": order.customer_name, "order_count": 0, "total_spent": 0.0}
        )
        entry["order_count"] += 1
        entry["total_spent"] += order.total_amount or 0.0

    repeat = [c for c in customers.values() if c["order_count"] > 1]
    for entry in repeat:
        entry["avg_order_value"] = _round(entry["total_spent"] / entry["order_count"])
        entry["total_spent"] = _round(entry["total_spent"])
    repeat.sort(key=lambda c: (-c["total_spent"], c["customer_name"]))
    return repeat[:REPEAT_CUSTOMER_LIMIT]


async def get_inventory_alerts(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, Any]:
    """Unavailable menu items, and those among them customers still ordered this week."""
    now = now or utcnow()
    result = await db.execute(select(MenuItem).where(MenuItem.is_available.is_(False)).order_by(MenuItem.id))
    unavailable = list(result.scalars().all())

    def describe(item: MenuItem) -> dict[str, Any]:
        return {"id": item.id, "name": item.name, "category": item.category, "price": item.price}

    demand: dict[int, int] = {}
    if unavailable:
        recent = await _load_orders(db, since=now - INVENTORY_DEMAND_WINDOW, exclude_cancelled=True)
        demand = {item_id: t["order_count"] for item_id, t in fold_item_totals(recent).items()}

    popular = [
        {**describe(item), "recent_demand": demand[item.id]}
        for item in unavailable
        if demand.get(item.id)
    ]
    popular.sort(key=lambda i: -i["recent_demand"])

    return {
        "unavailable_items": [describe(item) for item in unavailable],
        "popular_unavailable_items": popular,
    }


async def get_status_flow(db: AsyncSession, days: int = 30, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Orders per status and the average hours between creation and last update."""
    now = now or utcnow()
    orders = await _load_orders(db, since=_since_days(days, now))

    flow: dict[str, dict[str, Any]] = {}
    for order in orders:
        entry = flow.setdefault(order.status.value, {"status": order.status.value, "count": 0, "_hours": 0.0})
        entry["count"] += 1
        elapsed = as_utc(order.updated_at or order.created_at) - as_utc(order.created_at)
        entry["_hours"] += elapsed.total_seconds() / 3600

    result = []
    for status in OrderStatus:
        entry = flow.get(status.value)
        if entry is None:
            continue
        hours = entry.pop("_hours")
        entry["avg_processing_hours"] = _round(hours / entry["count"])
        result.append(entry)
    return result


async def get_recent_activity(db: AsyncSession, limit: int = 20, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or utcnow()
    orders = (
        await db.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit))
    ).scalars().all()
    menu_items = (
        await db.execute(select(MenuItem).order_by(MenuItem.created_at.desc(), MenuItem.id.desc()).limit(5))
    ).scalars().all()

    return {
        "recent_orders": [
            {
                "id": order.id,
                "customer_name": order.customer_name,
                "total_amount": order.total_amount,
                "status": order.status.value,
                "order_type": order.order_type.value,
                "created_at": order.created_at,
                "time_ago": time_ago(now, order.created_at),
            }
            for order in orders
        ],
        "recent_menu_items": [
            {
                "id": item.id,
                "name": item.name,
                "category": item.category,
                "price": item.price,
                "is_available": item.is_available,
                "created_at": item.created_at,
                "time_ago": time_ago(now, item.created_at),
            }
            for item in menu_items
        ],
    }


MENU_SORTABLE_COLUMNS = {
    "id": MenuItem.id,
    "name": MenuItem.name,
    "price": MenuItem.price,
    "category": MenuItem.category,
    "rating": MenuItem.rating,
    "created_at": MenuItem.created_at,
}


async def get_menu_items_with_stats(
    db: AsyncSession,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
    limit: int = 50,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """One page of menu items, each with its sales over the last 30 days."""
    if sort_by not in MENU_SORTABLE_COLUMNS:
        raise ValidationError(f"Cannot sort by '{sort_by}'. Options: {sorted(MENU_SORTABLE_COLUMNS)}")
    if sort_dir.lower() not in ("asc", "desc"):
        raise ValidationError("Sort direction must be 'asc' or 'desc'")
    if not 1 <= limit <= 100 or offset < 0:
        raise ValidationError("Limit must be between 1 and 100 and offset cannot be negative")

    conditions = []
    if category:
        conditions.append(MenuItem.category == category)
    search = (search or "").strip()
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(MenuItem.name.ilike(pattern), MenuItem.description.ilike(pattern)))

    column = MENU_SORTABLE_COLUMNS[sort_by]
    ordering = column.asc() if sort_dir.lower() == "asc" else column.desc()

    total = (await db.execute(select(func.count(MenuItem.id)).where(*conditions))).scalar() or 0
    menu_items = (
        await db.execute(
            select(MenuItem).where(*conditions).order_by(ordering, MenuItem.id).offset(offset).limit(limit)
        )
    ).scalars().all()

    now = now or utcnow()
    orders = await _load_orders(db, since=now - timedelta(days=MENU_STATS_WINDOW_DAYS), exclude_cancelled=True)
    totals = fold_item_totals(orders)

    items = []
    for menu_item in menu_items:
        stats = totals.get(menu_item.id)
        items.append({
            "item": menu_item,
            "stats": {
                "order_count": stats["order_count"] if stats else 0,
                "total_quantity": stats["total_quantity"] if stats else 0,
                "total_revenue": _round(stats["total_revenue"]) if stats else 0.0,
            },
        })

    return {
        "items": items,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


# =============================================================================
# ADMIN NOTIFICATIONS
# =============================================================================

async def get_notification_count(db: AsyncSession, now: Optional[datetime] = None) -> dict[str, int]:
    """Pending orders plus recent orders (capped) as the admin badge count."""
    now = now or utcnow()
    pending = (
        await db.execute(select(func.count(Order.id)).where(Order.status == OrderStatus.PENDING))
    ).scalar() or 0
    recent = (
        await db.execute(select(func.count(Order.id)).where(Order.created_at >= now - NOTIFICATION_WINDOW))
    ).scalar() or 0

    return {
        "count": pending + min(recent, RECENT_NOTIFICATION_CAP),
        "pending_orders": pending,
        "recent_orders": recent,
    }


async def get_notifications(
    db: AsyncSession, limit: int = 10, offset: int = 0, now: Optional[datetime] = None
) -> list[dict[str, Any]]:
    """Pending orders and other orders from the last 24 hours, newest first."""
    now = now or utcnow()
    pending = (
        await db.execute(
            select(Order)
            .where(Order.status == OrderStatus.PENDING)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
    ).scalars().all()
    recent = (
        await db.execute(
            select(Order)
            .where(Order.status != OrderStatus.PENDING, Order.created_at >= now - NOTIFICATION_WINDOW)
            .order_by(Order.created_at.desc())
            .offset(offset)
            .limit(min(limit, RECENT_NOTIFICATION_CAP))
        )
    ).scalars().all()

    notifications = [
        {
            "id": f"pending-{order.id}",
            "type": "pending_order",
            "title": "New Pending Order",
            "message": f"Order #{order.id} from {order.customer_name}",
            "priority": "high",
            "order": order,
            "created_at": order.created_at,
        }
        for order in pending
    ] + [
        {
            "id": f"recent-{order.id}",
            "type": "recent_order",
            "title": "Recent Order",
            "message": f"Order #{order.id} from {order.customer_name}",
            "priority": "medium",
            "order": order,
            "created_at": order.created_at,
        }
        for order in recent
    ]
    notifications.sort(key=lambda n: as_utc(n["created_at"]), reverse=True)
    return notifications

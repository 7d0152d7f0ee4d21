import pytest
from sqlalchemy import select

from orderdesk.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from orderdesk.models import MenuItem, Order, OrderStatus, OrderType
from orderdesk.schemas import OrderCreate, OrderItemCreate
from orderdesk.services import orders
from orderdesk.services.orders import ALLOWED_TRANSITIONS, OrderFilter, check_transition


def cart(*lines, order_type=OrderType.DINE_IN, **extra) -> OrderCreate:
    defaults = {"table_number": "12"} if order_type == OrderType.DINE_IN else {"delivery_address": "350 Fifth Avenue"}
    defaults.update(extra)
    return OrderCreate(
        items=[OrderItemCreate(id=item_id, quantity=quantity) for item_id, quantity in lines],
        order_type=order_type,
        **defaults,
    )


# =============================================================================
# STATE MACHINE
# =============================================================================

@pytest.mark.parametrize(
    "current, new",
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
        (OrderStatus.PREPARING, OrderStatus.READY),
        (OrderStatus.READY, OrderStatus.DELIVERED),
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.READY, OrderStatus.CANCELLED),
    ],
)
def test_forward_transitions_are_allowed(current, new):
    assert check_transition(current, new) is True


@pytest.mark.parametrize(
    "current, new",
    [
        (OrderStatus.PENDING, OrderStatus.DELIVERED),
        (OrderStatus.PREPARING, OrderStatus.CONFIRMED),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
        (OrderStatus.CANCELLED, OrderStatus.PENDING),
        (OrderStatus.DELIVERED, OrderStatus.PENDING),
    ],
)
def test_illegal_transitions_are_rejected(current, new):
    with pytest.raises(InvalidTransition):
        check_transition(current, new)


def test_same_status_is_a_no_op():
    for status in OrderStatus:
        assert check_transition(status, status) is False


def test_terminal_statuses_have_no_way_out():
    assert ALLOWED_TRANSITIONS[OrderStatus.DELIVERED] == frozenset()
    assert ALLOWED_TRANSITIONS[OrderStatus.CANCELLED] == frozenset()
    assert orders.TERMINAL_STATUSES == {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


# =============================================================================
# CHECKOUT
# =============================================================================

async def test_total_is_sum_of_snapshot_prices(db, customer, menu_items):
    user, _ = customer
    pizza, salad, _, _ = menu_items

    order = await orders.create_order(db, user, cart((pizza.id, 2), (salad.id, 1)))

    assert order.total_amount == pytest.approx(2 * 12.5 + 8.0)
    assert order.status == OrderStatus.PENDING
    assert order.items == [
        {"id": pizza.id, "name": "Margherita Pizza", "price": 12.5, "quantity": 2},
        {"id": salad.id, "name": "Caesar Salad", "price": 8.0, "quantity": 1},
    ]


async def test_total_does_not_follow_later_price_changes(db, customer, menu_items):
    user, _ = customer
    pizza = menu_items[0]
    order = await orders.create_order(db, user, cart((pizza.id, 2)))

    pizza.price = 99.0
    await db.commit()

    stored = (await db.execute(select(Order).where(Order.id == order.id).execution_options(populate_existing=True))).scalar_one()
    assert stored.total_amount == pytest.approx(25.0)
    assert stored.items[0]["price"] == 12.5


async def test_repeated_item_ids_are_merged(db, customer, menu_items):
    user, _ = customer
    pizza = menu_items[0]

    order = await orders.create_order(db, user, cart((pizza.id, 1), (pizza.id, 2)))

    assert len(order.items) == 1
    assert order.items[0]["quantity"] == 3
    assert order.total_amount == pytest.approx(37.5)


async def test_dine_in_requires_table_number(db, customer, menu_items):
    user, _ = customer

    with pytest.raises(ValidationError):
        await orders.create_order(db, user, cart((menu_items[0].id, 1), table_number="  "))


async def test_delivery_requires_address(db, customer, menu_items):
    user, _ = customer

    with pytest.raises(ValidationError):
        await orders.create_order(
            db, user, cart((menu_items[0].id, 1), order_type=OrderType.DELIVERY, delivery_address=None)
        )


async def test_field_for_the_other_order_type_is_dropped(db, customer, menu_items):
    user, _ = customer

    order = await orders.create_order(
        db,
        user,
        cart((menu_items[0].id, 1), order_type=OrderType.DELIVERY, table_number="9"),
    )

    assert order.delivery_address == "350 Fifth Avenue"
    assert order.table_number is None


async def test_customer_details_default_to_the_account(db, customer, menu_items):
    user, _ = customer

    order = await orders.create_order(db, user, cart((menu_items[0].id, 1)))

    assert order.customer_name == "John Smith"
    assert order.customer_phone == "212-555-0147"
    assert order.user_id == user.id


@pytest.mark.parametrize("quantity", [0, -1])
async def test_non_positive_quantity_is_rejected(db, customer, menu_items, quantity):
    user, _ = customer

    with pytest.raises(ValidationError):
        await orders.create_order(db, user, cart((menu_items[0].id, quantity)))


async def test_empty_cart_is_rejected(db, customer):
    user, _ = customer

    with pytest.raises(ValidationError):
        await orders.create_order(db, user, cart())


async def test_unknown_menu_item_is_rejected(db, customer, menu_items):
    user, _ = customer

    with pytest.raises(ValidationError) as excinfo:
        await orders.create_order(db, user, cart((menu_items[0].id, 1), (4242, 1)))

    assert excinfo.value.data == {"missing": [4242]}


async def test_unavailable_menu_item_is_rejected(db, customer, menu_items):
    user, _ = customer
    soup = menu_items[3]

    with pytest.raises(ValidationError):
        await orders.create_order(db, user, cart((soup.id, 1)))


async def test_checkout_without_customer_is_unauthenticated(db, menu_items):
    with pytest.raises(Unauthenticated):
        await orders.create_order(db, None, cart((menu_items[0].id, 1)))


# =============================================================================
# STATUS CHANGES
# =============================================================================

async def test_update_status_walks_the_workflow(db, make_order):
    order = await make_order()

    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.DELIVERED):
        order = await orders.update_status(db, order.id, status)

    assert order.status == OrderStatus.DELIVERED
    assert order.version == 5


async def test_repeating_delivered_is_idempotent(db, make_order):
    order = await make_order(status=OrderStatus.READY)

    first = await orders.update_status(db, order.id, OrderStatus.DELIVERED)
    second = await orders.update_status(db, order.id, OrderStatus.DELIVERED)

    assert first.status == second.status == OrderStatus.DELIVERED
    assert second.version == first.version


async def test_skipping_steps_is_rejected(db, make_order):
    order = await make_order()

    with pytest.raises(InvalidTransition):
        await orders.update_status(db, order.id, OrderStatus.DELIVERED)


async def test_update_status_of_missing_order(db):
    with pytest.raises(NotFound):
        await orders.update_status(db, 12345, OrderStatus.CONFIRMED)


async def test_concurrent_status_change_is_a_conflict(session_maker, make_order):
    order = await make_order()

    async with session_maker() as first, session_maker() as second:
        await orders.get_order(first, order.id)
        await orders.get_order(second, order.id)

        await orders.update_status(first, order.id, OrderStatus.CONFIRMED)
        with pytest.raises(Conflict):
            await orders.update_status(second, order.id, OrderStatus.CANCELLED)

    async with session_maker() as fresh:
        stored = await orders.get_order(fresh, order.id)
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.version == 2


async def test_owner_can_cancel(db, customer, make_order):
    user, _ = customer
    order = await make_order(user=user, status=OrderStatus.CONFIRMED)

    cancelled = await orders.cancel_order(db, order.id, requesting_user_id=user.id)

    assert cancelled.status == OrderStatus.CANCELLED


async def test_cancelling_someone_elses_order_is_forbidden(db, customer, other_customer, make_order):
    user, _ = customer
    stranger, _ = other_customer
    order = await make_order(user=user)

    with pytest.raises(Forbidden):
        await orders.cancel_order(db, order.id, requesting_user_id=stranger.id)


async def test_delivered_order_cannot_be_cancelled(db, customer, make_order):
    user, _ = customer
    order = await make_order(user=user, status=OrderStatus.DELIVERED)

    with pytest.raises(InvalidTransition):
        await orders.cancel_order(db, order.id, requesting_user_id=user.id)


async def test_get_order_scoped_to_owner(db, customer, other_customer, make_order):
    user, _ = customer
    stranger, _ = other_customer
    order = await make_order(user=user)

    assert (await orders.get_order(db, order.id, user_id=user.id)).id == order.id
    with pytest.raises(NotFound):
        await orders.get_order(db, order.id, user_id=stranger.id)


# =============================================================================
# LISTING
# =============================================================================

async def test_pagination_over_twenty_five_orders(db, make_order):
    for _ in range(25):
        await make_order()

    first = await orders.list_orders(db, OrderFilter(limit=10, offset=0))
    last = await orders.list_orders(db, OrderFilter(limit=10, offset=20))

    assert len(first.orders) == 10
    assert first.total == 25
    assert first.has_more is True
    assert len(last.orders) == 5
    assert last.has_more is False


async def test_filters_by_status_and_type(db, make_order):
    await make_order(status=OrderStatus.PENDING, order_type=OrderType.DINE_IN)
    await make_order(status=OrderStatus.PENDING, order_type=OrderType.DELIVERY)
    await make_order(status=OrderStatus.DELIVERED, order_type=OrderType.DELIVERY)

    page = await orders.list_orders(
        db, OrderFilter(status=OrderStatus.PENDING, order_type=OrderType.DELIVERY)
    )

    assert page.total == 1
    assert page.orders[0].status == OrderStatus.PENDING
    assert page.orders[0].order_type == OrderType.DELIVERY


async def test_filters_by_date_range(db, make_order, hours_ago):
    old = await make_order(created_at=hours_ago(72))
    recent = await make_order(created_at=hours_ago(2))

    page = await orders.list_orders(db, OrderFilter(date_from=hours_ago(24)))

    assert [o.id for o in page.orders] == [recent.id]
    page = await orders.list_orders(db, OrderFilter(date_to=hours_ago(24)))
    assert [o.id for o in page.orders] == [old.id]


async def test_search_matches_name_phone_or_id(db, make_order):
    alice = await make_order(customer_name="Alice Cooper")
    await make_order(customer_name="Bob Marley")

    by_name = await orders.list_orders(db, OrderFilter(search="alice"))
    by_id = await orders.list_orders(db, OrderFilter(search=str(alice.id)))

    assert [o.id for o in by_name.orders] == [alice.id]
    assert alice.id in [o.id for o in by_id.orders]


async def test_sorting_by_total_ascending(db, make_order):
    await make_order(items=[{"id": 1, "name": "A", "price": 30.0, "quantity": 1}])
    await make_order(items=[{"id": 1, "name": "A", "price": 10.0, "quantity": 1}])
    await make_order(items=[{"id": 1, "name": "A", "price": 20.0, "quantity": 1}])

    page = await orders.list_orders(db, OrderFilter(sort_by="total_amount", sort_dir="asc"))

    assert [o.total_amount for o in page.orders] == [10.0, 20.0, 30.0]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sort_by": "password"},
        {"sort_dir": "sideways"},
        {"limit": 0},
        {"limit": 101},
        {"offset": -1},
    ],
)
def test_invalid_filter_is_rejected(kwargs):
    with pytest.raises(ValidationError):
        OrderFilter(**kwargs)


def test_parse_choice_treats_all_as_no_filter():
    assert orders.parse_choice(OrderStatus, "all", "status") is None
    assert orders.parse_choice(OrderStatus, None, "status") is None
    assert orders.parse_choice(OrderStatus, "READY", "status") == OrderStatus.READY
    with pytest.raises(ValidationError):
        orders.parse_choice(OrderStatus, "lost", "status")


async def test_menu_item_deletion_keeps_order_history(db, customer, menu_items):
    user, _ = customer
    pizza = menu_items[0]
    order = await orders.create_order(db, user, cart((pizza.id, 1)))

    await db.delete(pizza)
    await db.commit()

    assert (await db.execute(select(MenuItem).where(MenuItem.id == pizza.id))).first() is None
    stored = await orders.get_order(db, order.id)
    assert stored.items[0]["name"] == "Margherita Pizza"

from orderdesk.models import OrderStatus
from tests.conftest import auth

NEW_ITEM = {
    "name": "Truffle Fries",
    "description": "Hand cut, parmesan",
    "price": 7.5,
    "category": " Sides ",
    "prep_time": "10 min",
}


async def test_public_menu_lists_available_items_only(client, menu_items):
    response = await client.get("/menu-items")

    assert response.status_code == 200
    names = [item["name"] for item in response.json()["data"]]
    assert "Seasonal Soup" not in names
    assert len(names) == 3


async def test_public_menu_filters_by_category(client, menu_items):
    pizza_only = await client.get("/menu-items", params={"category": "pizza"})
    everything = await client.get("/menu-items", params={"category": "all"})

    assert [item["name"] for item in pizza_only.json()["data"]] == ["Margherita Pizza"]
    assert len(everything.json()["data"]) == 3


async def test_admin_sees_unavailable_items(client, admin, menu_items):
    _, token = admin

    response = await client.get("/admin/menu-items", headers=auth(token))

    assert len(response.json()["data"]) == 4


async def test_admin_creates_item(client, admin):
    _, token = admin

    response = await client.post("/admin/menu-items", json=NEW_ITEM, headers=auth(token))

    assert response.status_code == 201
    item = response.json()["data"]
    assert item["category"] == "sides"
    assert item["is_available"] is True
    assert item["rating"] == 0.0


async def test_customer_cannot_manage_menu(client, customer):
    _, token = customer

    response = await client.post("/admin/menu-items", json=NEW_ITEM, headers=auth(token))

    assert response.status_code == 401


async def test_negative_price_is_rejected(client, admin):
    _, token = admin

    response = await client.post("/admin/menu-items", json={**NEW_ITEM, "price": -1}, headers=auth(token))

    assert response.status_code == 400


async def test_partial_update(client, admin, menu_items):
    _, token = admin
    pizza = menu_items[0]

    response = await client.put(
        f"/admin/menu-items/{pizza.id}", json={"price": 13.0, "is_available": False}, headers=auth(token)
    )

    item = response.json()["data"]
    assert item["price"] == 13.0
    assert item["is_available"] is False
    assert item["name"] == "Margherita Pizza"


async def test_update_cannot_null_required_field(client, admin, menu_items):
    _, token = admin

    response = await client.put(f"/admin/menu-items/{menu_items[0].id}", json={"name": None}, headers=auth(token))

    assert response.status_code == 400


async def test_update_missing_item(client, admin):
    _, token = admin

    response = await client.put("/admin/menu-items/999", json={"price": 1.0}, headers=auth(token))

    assert response.status_code == 404


async def test_only_super_admin_deletes(client, admin, super_admin, menu_items):
    _, token = admin
    _, owner_token = super_admin
    salad = menu_items[1]

    forbidden = await client.delete(f"/admin/menu-items/{salad.id}", headers=auth(token))
    assert forbidden.status_code == 403

    deleted = await client.delete(f"/admin/menu-items/{salad.id}", headers=auth(owner_token))
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"id": salad.id}

    again = await client.delete(f"/admin/menu-items/{salad.id}", headers=auth(owner_token))
    assert again.status_code == 404


async def test_menu_stats(client, admin, menu_items, make_order):
    _, token = admin
    pizza, salad, _, _ = menu_items
    pizza_line = {"id": pizza.id, "name": pizza.name, "price": 12.5, "quantity": 2}
    await make_order(items=[pizza_line])
    await make_order(items=[pizza_line, {"id": salad.id, "name": salad.name, "price": 8.0, "quantity": 1}])
    await make_order(items=[pizza_line], status=OrderStatus.CANCELLED)

    response = await client.get(
        "/admin/menu-items/stats", params={"sort_by": "price", "order": "desc", "limit": 2}, headers=auth(token)
    )

    page = response.json()["data"]
    assert [item["name"] for item in page["items"]] == ["Margherita Pizza", "Caesar Salad"]
    assert page["items"][0]["stats"] == {"order_count": 2, "total_quantity": 4, "total_revenue": 50.0}
    assert page["items"][1]["stats"]["order_count"] == 1
    assert page["pagination"] == {"total": 4, "limit": 2, "offset": 0, "has_more": True}


async def test_menu_stats_search(client, admin, menu_items):
    _, token = admin

    response = await client.get("/admin/menu-items/stats", params={"search": "coffee"}, headers=auth(token))

    assert [item["name"] for item in response.json()["data"]["items"]] == ["Tiramisu"]


async def test_menu_stats_rejects_unknown_sort_key(client, admin):
    _, token = admin

    response = await client.get("/admin/menu-items/stats", params={"sort_by": "secret"}, headers=auth(token))

    assert response.status_code == 400

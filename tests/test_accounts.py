import asyncio
import threading

import pytest

from orderdesk.core.exceptions import Conflict
from orderdesk.core.security import hash_password, verify_password
from orderdesk.models import AdminRole, User
from orderdesk.schemas import AdminRegister, UserRegister
from orderdesk.services import accounts
from tests.conftest import auth


async def test_register_customer(client):
    response = await client.post(
        "/user/register",
        json={"name": "Maria Lopez", "email": "Maria@Example.com", "password": "secret123", "phone": "555-0100"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token"]
    identity = body["data"]["identity"]
    assert identity["email"] == "maria@example.com"
    assert identity["role"] == "customer"
    assert "password_hash" not in identity


async def test_duplicate_customer_email_conflicts(client, customer):
    response = await client.post(
        "/user/register", json={"name": "Johnny", "email": "JOHN@example.com", "password": "secret123"}
    )

    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


async def test_simultaneous_registrations_with_one_email(client):
    body = {"name": "Maria Lopez", "email": "maria@example.com", "password": "secret123"}

    responses = await asyncio.gather(
        client.post("/user/register", json=body),
        client.post("/user/register", json=body),
    )

    assert sorted(r.status_code for r in responses) == [201, 409]
    assert [r.json()["error"] for r in responses if r.status_code == 409] == ["conflict"]


async def test_unique_constraint_violation_becomes_conflict(db, customer):
    duplicate = User(name="John Again", email="john@example.com", password_hash=hash_password("secret123"))

    with pytest.raises(Conflict):
        await accounts._insert(db, duplicate, "User with this email already exists")


async def test_password_hashing_runs_off_the_event_loop(db, tokens, monkeypatch):
    loop_thread = threading.get_ident()
    hashing_threads = []

    def recording_hash(password):
        hashing_threads.append(threading.get_ident())
        return hash_password(password)

    monkeypatch.setattr(accounts, "hash_password", recording_hash)

    await accounts.register_user(
        db, UserRegister(name="Maria Lopez", email="maria@example.com", password="secret123"), tokens
    )

    assert hashing_threads and loop_thread not in hashing_threads


async def test_register_rejects_short_password(client):
    response = await client.post(
        "/user/register", json={"name": "Maria", "email": "maria@example.com", "password": "123"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


async def test_customer_login(client, customer):
    response = await client.post("/user/login", json={"email": "john@example.com", "password": "secret123"})

    assert response.status_code == 200
    token = response.json()["data"]["token"]
    profile = await client.get("/user/profile", headers=auth(token))
    assert profile.json()["data"]["name"] == "John Smith"


async def test_wrong_password_and_unknown_email_look_the_same(client, customer):
    wrong = await client.post("/user/login", json={"email": "john@example.com", "password": "nope"})
    unknown = await client.post("/user/login", json={"email": "ghost@example.com", "password": "secret123"})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"]


async def test_profile_update(client, db, customer):
    user, token = customer

    response = await client.put(
        "/user/profile", json={"name": "  John Q. Smith ", "password": "n3w-secret"}, headers=auth(token)
    )

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "John Q. Smith"
    assert response.json()["data"]["phone"] == "212-555-0147"

    await db.refresh(user)
    assert verify_password("n3w-secret", user.password_hash)


async def test_profile_update_rejects_unknown_fields(client, customer):
    _, token = customer

    response = await client.put("/user/profile", json={"role": "admin"}, headers=auth(token))

    assert response.status_code == 400


async def test_register_admin(client):
    response = await client.post(
        "/admin/register", json={"username": "night_shift", "email": "night@orderdesk.dev", "password": "secret123"}
    )

    assert response.status_code == 201
    assert response.json()["data"]["identity"]["role"] == "admin"


async def test_duplicate_admin_username_conflicts(client, admin):
    response = await client.post(
        "/admin/register", json={"username": "floor_manager", "email": "other@orderdesk.dev", "password": "secret123"}
    )

    assert response.status_code == 409


async def test_admin_login_and_profile(client, admin):
    response = await client.post("/admin/login", json={"email": "floor@orderdesk.dev", "password": "secret123"})

    token = response.json()["data"]["token"]
    profile = await client.get("/admin/profile", headers=auth(token))
    assert profile.json()["data"]["username"] == "floor_manager"


async def test_super_admin_reactivates_admin(client, db, admin, super_admin):
    target, _ = admin
    _, owner_token = super_admin
    await accounts.set_admin_active(db, target.id, False, acting_admin_id=0)

    response = await client.put(
        f"/admin/admins/{target.id}/status", json={"is_active": True}, headers=auth(owner_token)
    )

    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is True
    login = await client.post("/admin/login", json={"email": "floor@orderdesk.dev", "password": "secret123"})
    assert login.status_code == 200


async def test_status_change_for_missing_admin(client, super_admin):
    _, token = super_admin

    response = await client.put("/admin/admins/999/status", json={"is_active": False}, headers=auth(token))

    assert response.status_code == 404


async def test_registered_super_admin_role(db, tokens):
    owner, _ = await accounts.register_admin(
        db,
        AdminRegister(username="boss", email="boss@orderdesk.dev", password="secret123"),
        tokens,
        role=AdminRole.SUPER_ADMIN,
    )

    assert owner.role == AdminRole.SUPER_ADMIN
    assert owner.password_hash != "secret123"


async def test_root_and_health(client):
    root = await client.get("/")
    assert root.json()["health"] == "/health"

    health = await client.get("/health")
    body = health.json()
    assert health.status_code == 200
    assert body["database"] == "healthy"
    assert body["status"] in ("operational", "degraded")


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/nowhere")

    assert response.status_code == 404
    assert response.json()["success"] is False

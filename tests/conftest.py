"""
Shared fixtures.

The environment is configured before ``orderdesk`` is imported: settings are
cached on first use and the Celery app reads them at import time.
"""

import os
import tempfile

os.environ["JWT_SECRET"] = "test-signing-secret-0123456789abcdef"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["DATA_DIRECTORY"] = tempfile.mkdtemp(prefix="orderdesk-tests-")
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["ENV_MODE"] = "development"

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from orderdesk.core.config import get_settings
from orderdesk.core.security import get_token_service
from orderdesk.database import build_engine, build_session_maker, get_db, init_db
from orderdesk.main import app
from orderdesk.models import AdminRole, MenuItem, Order, OrderStatus, OrderType, User, utcnow
from orderdesk.schemas import AdminRegister, UserRegister
from orderdesk.services import accounts
from orderdesk.services.excel_manager import ExcelManager
from orderdesk.services.rate_limiter import build_rate_limiters


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orderdesk.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def tokens():
    return get_token_service()


@pytest.fixture(autouse=True)
def clean_ledger():
    ExcelManager.clear_all()
    yield
    ExcelManager.clear_all()


@pytest.fixture
async def client(session_maker, clock):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    original_limiters = app.state.rate_limiters
    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiters = build_rate_limiters(get_settings(), clock=clock)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.rate_limiters = original_limiters


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# IDENTITIES
# =============================================================================

@pytest.fixture
async def admin(db, tokens):
    admin, token = await accounts.register_admin(
        db, AdminRegister(username="floor_manager", email="floor@orderdesk.dev", password="secret123"), tokens
    )
    return admin, token


@pytest.fixture
async def super_admin(db, tokens):
    admin, token = await accounts.register_admin(
        db,
        AdminRegister(username="owner", email="owner@orderdesk.dev", password="secret123"),
        tokens,
        role=AdminRole.SUPER_ADMIN,
    )
    return admin, token


@pytest.fixture
async def customer(db, tokens):
    user, token = await accounts.register_user(
        db,
        UserRegister(name="John Smith", email="john@example.com", password="secret123", phone="212-555-0147"),
        tokens,
    )
    return user, token


@pytest.fixture
async def other_customer(db, tokens):
    user, token = await accounts.register_user(
        db, UserRegister(name="Jane Doe", email="jane@example.com", password="secret123"), tokens
    )
    return user, token


# =============================================================================
# CATALOG AND ORDERS
# =============================================================================

@pytest.fixture
async def menu_items(db):
    items = [
        MenuItem(name="Margherita Pizza", description="Tomato, mozzarella", price=12.5, category="pizza"),
        MenuItem(name="Caesar Salad", description="Romaine, parmesan", price=8.0, category="salad"),
        MenuItem(name="Tiramisu", description="Coffee dessert", price=6.25, category="dessert"),
        MenuItem(name="Seasonal Soup", description="Ask the staff", price=5.0, category="soup", is_available=False),
    ]
    db.add_all(items)
    await db.commit()
    for item in items:
        await db.refresh(item)
    return items


@pytest.fixture
def make_order(db):
    """Insert an order directly, bypassing checkout, for listing and reporting tests."""

    async def _make(
        user: User = None,
        items=None,
        status: OrderStatus = OrderStatus.PENDING,
        order_type: OrderType = OrderType.DINE_IN,
        created_at=None,
        customer_name: str = "Walk In",
    ) -> Order:
        items = items or [{"id": 1, "name": "Margherita Pizza", "price": 12.5, "quantity": 1}]
        created_at = created_at or utcnow()
        order = Order(
            user_id=user.id if user else None,
            items=items,
            total_amount=round(sum(i["price"] * i["quantity"] for i in items), 2),
            status=status,
            order_type=order_type,
            table_number="4" if order_type == OrderType.DINE_IN else None,
            delivery_address="350 Fifth Avenue" if order_type == OrderType.DELIVERY else None,
            customer_name=customer_name,
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    return _make


@pytest.fixture
def hours_ago():
    def _ago(hours: float):
        return utcnow() - timedelta(hours=hours)

    return _ago

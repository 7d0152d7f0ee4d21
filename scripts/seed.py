"""
Demo Data Seeding Script

Fills an empty database with staff accounts, customers, a menu and a month
of order history so the dashboard has something to show.
Run from project root: python scripts/seed.py [--reset]

Staff logins:
    owner@orderdesk.dev / admin123 (super_admin)
    admin1@orderdesk.dev / admin123 (admin), and so on
Customer logins:
    user1@example.com / password123, and so on
"""

import argparse
import asyncio
import random
import sys
from datetime import timedelta

from orderdesk.core.security import hash_password
from orderdesk.database import Base, async_session_maker, engine, init_db
from orderdesk.models import Admin, AdminRole, MenuItem, Order, OrderStatus, OrderType, User, utcnow

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

USER_NAMES = [
    "John Smith", "Emma Wilson", "Michael Brown", "Sarah Davis", "David Miller",
    "Lisa Anderson", "James Taylor", "Jennifer Garcia", "Robert Martinez", "Amanda Rodriguez",
    "Christopher Lee", "Michelle White", "Daniel Johnson", "Stephanie Thompson", "Matthew Davis",
]
STREETS = ["Main St", "Oak Ave", "Elm St", "Pine Rd", "Maple Dr", "Cedar Ln", "Birch Way", "Willow Ct"]
NOTES = ["Extra crispy please", "No onions", "Light on the sauce", "Well done", "Gluten free", "Extra napkins"]

MENU = [
    ("Grilled Salmon", "Fresh Atlantic salmon with herbs and lemon", 28.99, "main course"),
    ("Chicken Parmesan", "Breaded chicken with marinara and mozzarella", 24.99, "main course"),
    ("Ribeye Steak", "12oz prime ribeye with garlic butter", 34.99, "main course"),
    ("Bruschetta", "Toasted bread with tomatoes, basil and olive oil", 8.99, "appetizer"),
    ("Calamari Rings", "Crispy fried calamari with marinara", 11.99, "appetizer"),
    ("Chicken Wings", "Buffalo wings with blue cheese dip", 16.99, "appetizer"),
    ("Truffle Fries", "Crispy fries with truffle oil and parmesan", 9.99, "side dish"),
    ("Chocolate Lava Cake", "Warm chocolate cake with molten center", 8.99, "dessert"),
    ("Tiramisu", "Classic Italian dessert with coffee and mascarpone", 9.99, "dessert"),
    ("Artisan Coffee", "Freshly brewed premium coffee", 4.99, "beverage"),
    ("Orange Juice", "Fresh squeezed orange juice", 3.99, "beverage"),
]

# Roughly how a month of history ends up distributed
STATUS_WEIGHTS = {
    OrderStatus.PENDING: 1,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PREPARING: 1,
    OrderStatus.READY: 1,
    OrderStatus.DELIVERED: 8,
    OrderStatus.CANCELLED: 2,
}


def random_phone() -> str:
    return f"212-{random.randint(100, 999)}-{random.randint(1000, 9999)}"


def random_address() -> str:
    return f"{random.randint(1, 9999)} {random.choice(STREETS)}, New York, NY"


def build_order(user: User, menu_items: list[MenuItem]) -> Order:
    picks = random.sample(menu_items, k=random.randint(1, 3))
    lines = [
        {"id": item.id, "name": item.name, "price": item.price, "quantity": random.randint(1, 3)}
        for item in picks
    ]
    order_type = random.choice(list(OrderType))
    created_at = utcnow() - timedelta(minutes=random.randint(5, 30 * 24 * 60))
    status = random.choices(list(STATUS_WEIGHTS), weights=list(STATUS_WEIGHTS.values()))[0]

    return Order(
        user_id=user.id,
        items=lines,
        total_amount=round(sum(line["price"] * line["quantity"] for line in lines), 2),
        status=status,
        order_type=order_type,
        table_number=str(random.randint(1, 20)) if order_type == OrderType.DINE_IN else None,
        delivery_address=random_address() if order_type == OrderType.DELIVERY else None,
        customer_name=user.name,
        customer_phone=user.phone,
        order_notes=random.choice(NOTES) if random.random() > 0.7 else None,
        created_at=created_at,
        updated_at=created_at + timedelta(minutes=random.randint(0, 90)),
    )


async def seed(num_users: int, num_admins: int, num_orders: int, reset: bool) -> None:
    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        print("🗑️  Dropped all tables")
    await init_db()

    admin_password = hash_password("admin123")
    user_password = hash_password("password123")

    async with async_session_maker() as session:
        admins = [
            Admin(
                username="owner",
                email="owner@orderdesk.dev",
                password_hash=admin_password,
                role=AdminRole.SUPER_ADMIN,
            )
        ]
        admins += [
            Admin(
                username=f"manager_{i}",
                email=f"admin{i}@orderdesk.dev",
                password_hash=admin_password,
                role=AdminRole.ADMIN,
            )
            for i in range(1, num_admins + 1)
        ]
        session.add_all(admins)

        users = [
            User(
                name=USER_NAMES[i % len(USER_NAMES)],
                email=f"user{i + 1}@example.com",
                phone=random_phone(),
                password_hash=user_password,
            )
            for i in range(num_users)
        ]
        session.add_all(users)

        menu_items = [
            MenuItem(name=name, description=description, price=price, category=category,
                     rating=round(random.uniform(3.5, 5.0), 1), popular=random.random() > 0.7)
            for name, description, price, category in MENU
        ]
        session.add_all(menu_items)
        await session.flush()

        session.add_all(build_order(random.choice(users), menu_items) for _ in range(num_orders))
        await session.commit()

    print("✅ Database seeded")
    print(f"   Admins: {len(admins)} (login owner@orderdesk.dev / admin123)")
    print(f"   Users: {num_users}")
    print(f"   Menu Items: {len(MENU)}")
    print(f"   Orders: {num_orders}")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Demo Data Seeding Script")
    parser.add_argument("--users", type=int, default=50)
    parser.add_argument("--admins", type=int, default=3)
    parser.add_argument("--orders", type=int, default=150)
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    args = parser.parse_args()

    asyncio.run(seed(max(1, args.users), args.admins, args.orders, args.reset))

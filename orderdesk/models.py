"""
SQLAlchemy Database Models

Credential store (admins, customers), the menu catalog and orders.

Orders keep their line items as a JSON snapshot of the menu at checkout
time ({id, name, price, quantity}); later catalog changes never touch
historical orders. Orders are never deleted.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from orderdesk.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; they are stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class AdminRole(str, enum.Enum):
    """Roles an admin account can hold."""
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


CUSTOMER_ROLE = "customer"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    """Order type - Dine-in or Delivery."""
    DINE_IN = "dine-in"
    DELIVERY = "delivery"


class Admin(Base):
    """Staff account used on the admin dashboard."""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(AdminRole, name="admin_role", values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=AdminRole.ADMIN,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Admin #{self.id} - {self.username} - {self.role.value}>"


class User(Base):
    """Customer account used by the ordering web app."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=CUSTOMER_ROLE)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    orders = relationship("Order", back_populates="user")

    def __repr__(self):
        return f"<User #{self.id} - {self.email}>"


class MenuItem(Base):
    """A dish or drink on the menu."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(String(64), nullable=False, index=True)
    image = Column(String(500), nullable=True)
    prep_time = Column(String(32), nullable=True)  # e.g. "15-20 min"
    rating = Column(Float, nullable=False, default=0.0)
    popular = Column(Boolean, nullable=False, default=False)
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.price}>"


class Order(Base):
    """
    Customer order.

    ``version`` is bumped by SQLAlchemy on every UPDATE and checked in the
    WHERE clause, so two admins racing on the same order cannot silently
    overwrite each other.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)  # [{id, name, price, quantity}]
    total_amount = Column(Float, nullable=False)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values, native_enum=False),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    order_type = Column(
        Enum(OrderType, name="order_type", values_callable=_enum_values, native_enum=False),
        nullable=False,
        index=True,
    )
    table_number = Column(String(20), nullable=True)
    delivery_address = Column(String(255), nullable=True)
    order_notes = Column(Text, nullable=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version = Column(Integer, nullable=False)

    user = relationship("User", back_populates="orders")

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_type.value} - {self.customer_name} - {self.status.value}>"

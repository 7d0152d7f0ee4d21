"""
Pydantic Schemas for Request/Response Validation

Every endpoint answers with the same envelope:

    {"success": true, "message": "...", "data": {...}}

Errors add a machine-readable ``error`` code. Response schemas never
carry password hashes.
"""

from datetime import datetime
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from orderdesk.models import AdminRole, OrderStatus, OrderType

T = TypeVar("T")


# =============================================================================
# ENVELOPE
# =============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""
    success: bool = True
    message: str = ""
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    success: bool = False
    message: str
    error: str
    data: Optional[Any] = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


# =============================================================================
# IDENTITY SCHEMAS
# =============================================================================

class AdminRegister(BaseModel):
    """Request schema for registering an admin."""
    username: str = Field(..., min_length=3, max_length=50, examples=["manager_emma"])
    email: EmailStr = Field(..., examples=["emma@orderdesk.dev"])
    password: str = Field(..., min_length=6, max_length=72)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username cannot be blank")
        return v


class UserRegister(BaseModel):
    """Request schema for registering a customer."""
    name: str = Field(..., min_length=2, max_length=100, examples=["John Smith"])
    email: EmailStr = Field(..., examples=["john@example.com"])
    password: str = Field(..., min_length=6, max_length=72)
    phone: Optional[str] = Field(None, max_length=20, examples=["212-555-0147"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class UserProfileUpdate(BaseModel):
    """Partial profile update; only provided fields change."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    password: Optional[str] = Field(None, min_length=6, max_length=72)


class AdminStatusUpdate(BaseModel):
    is_active: bool


class AdminResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: AdminRole
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: datetime


class AdminAuthResponse(BaseModel):
    token: str
    identity: AdminResponse


class UserAuthResponse(BaseModel):
    token: str
    identity: UserResponse


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128, examples=["Margherita Pizza"])
    description: str = Field(default="", max_length=2000)
    price: float = Field(..., ge=0, examples=[14.99])
    category: str = Field(..., min_length=1, max_length=64, examples=["pizza"])
    image: Optional[str] = Field(None, max_length=500)
    prep_time: Optional[str] = Field(None, max_length=32, examples=["15-20 min"])
    rating: float = Field(default=0.0, ge=0, le=5)
    popular: bool = False
    is_available: bool = True


class MenuItemUpdate(BaseModel):
    """Partial menu item update; only provided fields change."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=128)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=64)
    image: Optional[str] = Field(None, max_length=500)
    prep_time: Optional[str] = Field(None, max_length=32)
    rating: Optional[float] = Field(None, ge=0, le=5)
    popular: Optional[bool] = None
    is_available: Optional[bool] = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    category: str
    image: Optional[str] = None
    prep_time: Optional[str] = None
    rating: float
    popular: bool
    is_available: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class MenuItemStats(BaseModel):
    """Sales of one menu item over the last 30 days (cancelled orders excluded)."""
    order_count: int
    total_quantity: int
    total_revenue: float


class MenuItemWithStats(MenuItemResponse):
    stats: MenuItemStats


class MenuItemPage(BaseModel):
    items: List[MenuItemWithStats]
    pagination: Pagination


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """A cart line: which menu item and how many."""
    id: int = Field(..., ge=1, examples=[3])
    quantity: int = Field(..., examples=[2])


class OrderCreate(BaseModel):
    """Request schema for checking out a cart."""
    items: List[OrderItemCreate]
    order_type: OrderType = Field(..., examples=["dine-in"])
    table_number: Optional[str] = Field(None, max_length=20, examples=["12"])
    delivery_address: Optional[str] = Field(None, max_length=255, examples=["350 Fifth Avenue"])
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    order_notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class LineItem(BaseModel):
    """Menu snapshot stored on the order."""
    id: int
    name: str
    price: float
    quantity: int


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    items: List[LineItem]
    total_amount: float
    status: OrderStatus
    order_type: OrderType
    table_number: Optional[str] = None
    delivery_address: Optional[str] = None
    customer_name: str
    customer_phone: Optional[str] = None
    order_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrderListItem(OrderResponse):
    """Order row for list views."""
    item_count: int = 0
    time_ago: str = ""


class OrderPage(BaseModel):
    orders: List[OrderListItem]
    pagination: Pagination


# =============================================================================
# REPORTING SCHEMAS
# =============================================================================

class TopItem(BaseModel):
    id: int
    name: str
    total_quantity: int
    total_revenue: float


class NotificationCount(BaseModel):
    count: int
    pending_orders: int
    recent_orders: int


class Notification(BaseModel):
    id: str
    type: str
    title: str
    message: str
    priority: str
    order: OrderResponse
    created_at: datetime


class NotificationList(BaseModel):
    notifications: List[Notification]
    total: int


# =============================================================================
# SYSTEM SCHEMAS
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    timestamp: datetime

"""
Account Service (Credential Store)

Registration, login and profile management for admins and customers.
Identities are never hard-deleted; admins are soft-deactivated through
``is_active``.
"""

import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import Conflict, NotFound, Unauthenticated, ValidationError
from orderdesk.core.security import TokenService, hash_password, verify_password
from orderdesk.models import CUSTOMER_ROLE, Admin, AdminRole, User
from orderdesk.schemas import AdminRegister, LoginRequest, UserProfileUpdate, UserRegister

logger = logging.getLogger(__name__)

ADMIN_KIND = "admin"
USER_KIND = "user"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def _insert(db: AsyncSession, record, conflict_message: str) -> None:
    """
    Insert a new identity so it gets an id.

    The unique constraints have the last word when two registrations for the
    same email race past the existence check.
    """
    db.add(record)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Registration lost a race on a unique field: {conflict_message}")
        raise Conflict(conflict_message)


# =============================================================================
# ADMINS
# =============================================================================

async def register_admin(
    db: AsyncSession,
    data: AdminRegister,
    tokens: TokenService,
    role: AdminRole = AdminRole.ADMIN,
) -> tuple[Admin, str]:
    """
    Create an admin account and sign it in.

    Raises:
        Conflict: If the username or email is already taken
    """
    email = _normalize_email(data.email)
    logger.info(f"Admin registration attempt: {data.username} <{email}>")

    existing = await db.execute(
        select(Admin.id).where(or_(Admin.email == email, Admin.username == data.username))
    )
    if existing.first() is not None:
        raise Conflict("Admin with this email or username already exists")

    admin = Admin(
        username=data.username,
        email=email,
        password_hash=await run_in_threadpool(hash_password, data.password),
        role=role,
        is_active=True,
    )
    await _insert(db, admin, "Admin with this email or username already exists")
    # Token is issued before commit: a missing secret leaves no account behind.
    token = tokens.issue(admin.id, admin.role.value, ADMIN_KIND)
    await db.commit()
    await db.refresh(admin)

    logger.info(f"Admin #{admin.id} registered ({admin.role.value})")
    return admin, token


async def login_admin(db: AsyncSession, data: LoginRequest, tokens: TokenService) -> tuple[Admin, str]:
    """
    Check admin credentials and issue a token.

    Raises:
        Unauthenticated: Unknown email, wrong password or deactivated account
    """
    email = _normalize_email(data.email)
    result = await db.execute(select(Admin).where(Admin.email == email))
    admin = result.scalar_one_or_none()

    if admin is None or not await run_in_threadpool(verify_password, data.password, admin.password_hash):
        logger.warning(f"Failed admin login for {email}")
        raise Unauthenticated("Invalid credentials")
    if not admin.is_active:
        logger.warning(f"Login attempt by deactivated admin #{admin.id}")
        raise Unauthenticated("Account is deactivated")

    token = tokens.issue(admin.id, admin.role.value, ADMIN_KIND)
    logger.info(f"Admin #{admin.id} logged in")
    return admin, token


async def get_admin(db: AsyncSession, admin_id: int) -> Optional[Admin]:
    return await db.get(Admin, admin_id)


async def set_admin_active(db: AsyncSession, admin_id: int, is_active: bool, acting_admin_id: int) -> Admin:
    """
    Activate or deactivate an admin account.

    Raises:
        ValidationError: If an admin tries to deactivate their own account
        NotFound: If the admin does not exist
    """
    if admin_id == acting_admin_id and not is_active:
        raise ValidationError("You cannot deactivate your own account")

    admin = await db.get(Admin, admin_id)
    if admin is None:
        raise NotFound.for_resource("Admin", admin_id)

    admin.is_active = is_active
    await db.commit()
    await db.refresh(admin)

    logger.info(
        f"Admin #{admin_id} {'activated' if is_active else 'deactivated'} by admin #{acting_admin_id}"
    )
    return admin


# =============================================================================
# CUSTOMERS
# =============================================================================

async def register_user(db: AsyncSession, data: UserRegister, tokens: TokenService) -> tuple[User, str]:
    """
    Create a customer account and sign it in.

    Raises:
        Conflict: If the email is already registered
    """
    email = _normalize_email(data.email)
    logger.info(f"User registration attempt: <{email}>")

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.first() is not None:
        raise Conflict("User with this email already exists")

    user = User(
        name=data.name.strip(),
        email=email,
        phone=data.phone,
        password_hash=await run_in_threadpool(hash_password, data.password),
        role=CUSTOMER_ROLE,
        is_active=True,
    )
    await _insert(db, user, "User with this email already exists")
    token = tokens.issue(user.id, user.role, USER_KIND)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User #{user.id} registered")
    return user, token


async def login_user(db: AsyncSession, data: LoginRequest, tokens: TokenService) -> tuple[User, str]:
    """
    Check customer credentials and issue a token.

    Raises:
        Unauthenticated: Unknown email, wrong password or deactivated account
    """
    email = _normalize_email(data.email)
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not await run_in_threadpool(verify_password, data.password, user.password_hash):
        logger.warning(f"Failed user login for {email}")
        raise Unauthenticated("Invalid credentials")
    if not user.is_active:
        logger.warning(f"Login attempt by deactivated user #{user.id}")
        raise Unauthenticated("Account is deactivated")

    token = tokens.issue(user.id, user.role, USER_KIND)
    logger.info(f"User #{user.id} logged in")
    return user, token


async def get_user(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def update_user_profile(db: AsyncSession, user_id: int, data: UserProfileUpdate) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound.for_resource("User", user_id)

    update_data = data.model_dump(exclude_unset=True)
    if "name" in update_data:
        if update_data["name"] is None:
            raise ValidationError("Name cannot be empty")
        user.name = update_data["name"].strip()
    if "phone" in update_data:
        user.phone = update_data["phone"]
    if update_data.get("password"):
        user.password_hash = await run_in_threadpool(hash_password, update_data["password"])

    await db.commit()
    await db.refresh(user)

    logger.info(f"User #{user_id} updated profile fields: {sorted(update_data)}")
    return user

"""
Access Control Dependencies

Every guarded endpoint runs the same pipeline, expressed as chained FastAPI
dependencies:

    bearer token -> verify -> load identity -> role gate -> rate limit

Admin tokens only open admin endpoints and user tokens only open customer
endpoints. The verified identity is attached to ``request.state.identity``
without its password hash.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.core.exceptions import Forbidden, Unauthenticated
from orderdesk.core.security import TokenService, get_token_service
from orderdesk.database import get_db
from orderdesk.models import Admin, AdminRole, User
from orderdesk.services.accounts import ADMIN_KIND, USER_KIND

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, safe to log and to hand to services."""
    id: int
    kind: str
    role: str
    name: str
    email: str
    is_active: bool

    @property
    def rate_limit_key(self) -> tuple[str, int]:
        # Admin and user ids come from different tables and may collide.
        return (self.kind, self.id)

    @classmethod
    def from_admin(cls, admin: Admin) -> "Identity":
        return cls(
            id=admin.id,
            kind=ADMIN_KIND,
            role=admin.role.value,
            name=admin.username,
            email=admin.email,
            is_active=admin.is_active,
        )

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            kind=USER_KIND,
            role=user.role,
            name=user.name,
            email=user.email,
            is_active=user.is_active,
        )


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Extract the token from ``Authorization: Bearer <token>``.

    Raises:
        Unauthenticated: If the header is missing or not a bearer token
    """
    if not authorization:
        raise Unauthenticated("Access denied. No token provided.")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise Unauthenticated("Access denied. No token provided.")
    return token


async def _authenticate(
    request: Request,
    token: str,
    tokens: TokenService,
    db: AsyncSession,
    kind: str,
) -> Identity:
    claims = tokens.verify(token)

    if claims.kind != kind:
        logger.warning(f"Token of kind '{claims.kind}' used on a '{kind}' endpoint: {request.url.path}")
        raise Unauthenticated("Invalid token.")

    model = Admin if kind == ADMIN_KIND else User
    record = await db.get(model, claims.subject_id)
    if record is None:
        logger.warning(f"Token for unknown {kind} #{claims.subject_id}")
        raise Unauthenticated("Invalid token.")
    if not record.is_active:
        logger.warning(f"Token for deactivated {kind} #{record.id}")
        raise Unauthenticated("Account is deactivated.")

    identity = Identity.from_admin(record) if kind == ADMIN_KIND else Identity.from_user(record)
    request.state.identity = identity
    return identity


async def get_current_admin(
    request: Request,
    token: str = Depends(bearer_token),
    tokens: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Authenticated admin (any admin role)."""
    return await _authenticate(request, token, tokens, db, ADMIN_KIND)


async def get_current_user(
    request: Request,
    token: str = Depends(bearer_token),
    tokens: TokenService = Depends(get_token_service),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Authenticated customer."""
    return await _authenticate(request, token, tokens, db, USER_KIND)


def require_roles(*roles: AdminRole) -> Callable:
    """
    Role gate for admin endpoints. Runs after authentication.

    Usage:
        identity: Identity = Depends(require_roles(AdminRole.SUPER_ADMIN))
    """
    allowed = {role.value for role in roles}

    async def role_gate(identity: Identity = Depends(get_current_admin)) -> Identity:
        if identity.role not in allowed:
            logger.warning(
                f"Admin #{identity.id} with role '{identity.role}' denied; requires one of {sorted(allowed)}"
            )
            raise Forbidden("Access denied. Insufficient permissions.")
        return identity

    return role_gate


def rate_limited(limiter_name: str, guard: Callable) -> Callable:
    """
    Count the request against a named limiter from ``app.state.rate_limiters``.

    ``guard`` is the authentication (or role gate) dependency whose identity
    is charged.
    """

    async def limit(request: Request, identity: Identity = Depends(guard)) -> Identity:
        request.app.state.rate_limiters[limiter_name].hit(identity.rate_limit_key)
        return identity

    return limit


any_admin = require_roles(AdminRole.ADMIN, AdminRole.SUPER_ADMIN)
super_admin = require_roles(AdminRole.SUPER_ADMIN)

"""
Password Hashing and Session Tokens

Two black-box primitives wrapped behind a small interface:
    - passlib's CryptContext (bcrypt) for password hashes
    - PyJWT (HS256) for stateless session tokens

Tokens carry ``sub`` (identity id, as a string), ``role``, ``kind``
("admin" or "user"), ``iat`` and ``exp``. There is no server-side
revocation list; deactivating an identity is enforced at load time by the
access-control dependencies.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional

import jwt
from passlib.context import CryptContext

from orderdesk.core.config import MAX_TOKEN_TTL_MINUTES, get_settings
from orderdesk.core.exceptions import ServerMisconfigured, Unauthenticated

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORDS
# =============================================================================

@lru_cache()
def get_password_context() -> CryptContext:
    """Build the bcrypt context once, using the configured cost factor."""
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.password_hash_rounds,
    )


def hash_password(password: str) -> str:
    return get_password_context().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password; malformed stored hashes count as a mismatch."""
    try:
        return get_password_context().verify(password, password_hash)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


# =============================================================================
# SESSION TOKENS
# =============================================================================

@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""
    subject_id: int
    role: str
    kind: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    Issues and verifies signed session tokens.

    Attributes:
        secret: HMAC signing secret (None means the server is misconfigured)
        algorithm: JWT algorithm, HS256 by default
        ttl: Token lifetime, clamped to 24 hours
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        ttl_minutes: int = MAX_TOKEN_TTL_MINUTES,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(minutes=min(ttl_minutes, MAX_TOKEN_TTL_MINUTES))
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _require_secret(self) -> str:
        if not self.secret:
            logger.error("JWT_SECRET is not configured")
            raise ServerMisconfigured()
        return self.secret

    def issue(self, subject_id: int, role: str, kind: str) -> str:
        """
        Create a signed token for an identity.

        Args:
            subject_id: Admin or user primary key
            role: Role name embedded for the role gate
            kind: "admin" or "user", selects the identity table on load

        Returns:
            Encoded JWT string
        """
        secret = self._require_secret()
        issued_at = self.clock()
        payload = {
            "sub": str(subject_id),
            "role": role,
            "kind": kind,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature and expiry and return the claims.

        Raises:
            ServerMisconfigured: If no signing secret is configured
            Unauthenticated: On any decoding or claim error
        """
        secret = self._require_secret()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
            subject_id = int(payload["sub"])
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.warning(f"Token verification failed: {e}")
            raise Unauthenticated("Invalid token.")

        return TokenClaims(
            subject_id=subject_id,
            role=str(payload.get("role", "")),
            kind=str(payload.get("kind", "")),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


@lru_cache()
def get_token_service() -> TokenService:
    """Token service built from the cached settings."""
    settings = get_settings()
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_minutes=settings.access_token_ttl_minutes,
    )

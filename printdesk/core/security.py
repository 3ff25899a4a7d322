"""
PrintDesk - Security Layer

Bearer-token authentication and role authorization.

Tokens are Supabase JWTs (HS256, audience "authenticated"). The caller's
role comes from a two-step strategy:
1. ClaimRoleResolver   - a custom role claim on the verified token,
                         trusted while the token is fresh
2. ProfileRoleResolver - the `role` field on the user's profile document
"""

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Sequence

import jwt
from fastapi import Header, Request
from loguru import logger

from ..models import Identity
from .errors import AuthenticationError, AuthorizationError

if TYPE_CHECKING:
    from ..config import Settings
    from ..db import DocumentStore

VALID_ROLES = ("admin", "vendor")
DEFAULT_ROLE = "vendor"
JWT_AUDIENCE = "authenticated"


@dataclass
class RoleResolution:
    role: str
    email: Optional[str] = None


class RoleResolver(Protocol):
    def resolve(self, uid: str, claims: dict[str, Any]) -> Optional[RoleResolution]: ...


# =============================================================================
# Role resolvers
# =============================================================================


class ClaimRoleResolver:
    """
    Reads `app_metadata.role` (or top-level `user_role`) from verified claims.

    Only answers when the claim holds a known role and the token was issued
    within `max_age_seconds`; otherwise defers to the next resolver.
    """

    def __init__(self, max_age_seconds: int = 3600, clock: Callable[[], float] = time.time):
        self._max_age = max_age_seconds
        self._clock = clock

    def resolve(self, uid: str, claims: dict[str, Any]) -> Optional[RoleResolution]:
        app_metadata = claims.get("app_metadata") or {}
        role = app_metadata.get("role") if isinstance(app_metadata, dict) else None
        role = role or claims.get("user_role")
        if role not in VALID_ROLES:
            return None

        issued_at = claims.get("iat")
        if not isinstance(issued_at, (int, float)):
            return None
        if self._clock() - issued_at > self._max_age:
            logger.debug(f"Role claim for {uid} is stale, falling back to profile")
            return None

        return RoleResolution(role=role, email=claims.get("email"))


class ProfileRoleResolver:
    """Reads `users/<uid>.role`; a missing profile or role means vendor."""

    def __init__(self, documents: "DocumentStore", collection: str = "users"):
        self._documents = documents
        self._collection = collection

    def resolve(self, uid: str, claims: dict[str, Any]) -> Optional[RoleResolution]:
        profile = self._documents.get(self._collection, uid) or {}
        role = profile.get("role")
        if role not in VALID_ROLES:
            role = DEFAULT_ROLE
        return RoleResolution(role=role, email=claims.get("email") or profile.get("email"))


class ChainedRoleResolver:
    """First resolver with an answer wins."""

    def __init__(self, resolvers: Sequence[RoleResolver]):
        self._resolvers = list(resolvers)

    def resolve(self, uid: str, claims: dict[str, Any]) -> Optional[RoleResolution]:
        for resolver in self._resolvers:
            resolution = resolver.resolve(uid, claims)
            if resolution is not None:
                return resolution
        return None


# =============================================================================
# Access guard
# =============================================================================


class AccessGuard:
    """Resolves the caller identity and enforces roles. Never mutates state."""

    def __init__(
        self,
        jwt_secret: Optional[str],
        role_resolver: RoleResolver,
        *,
        dev_bypass: bool = False,
    ):
        self._jwt_secret = jwt_secret
        self._roles = role_resolver
        self._dev_bypass = dev_bypass and not jwt_secret

    @classmethod
    def from_settings(cls, settings: "Settings", documents: "DocumentStore") -> "AccessGuard":
        if not settings.SUPABASE_JWT_SECRET:
            logger.warning("SUPABASE_JWT_SECRET not configured - bearer tokens cannot be verified")
        resolver = ChainedRoleResolver(
            [
                ClaimRoleResolver(max_age_seconds=settings.ROLE_CLAIM_MAX_AGE_SECONDS),
                ProfileRoleResolver(documents),
            ]
        )
        dev_bypass = settings.AUTH_DEV_BYPASS and settings.is_development
        if dev_bypass and not settings.SUPABASE_JWT_SECRET:
            logger.warning("AUTH_DEV_BYPASS active - every request is a dev admin")
        return cls(settings.SUPABASE_JWT_SECRET, resolver, dev_bypass=dev_bypass)

    def _decode(self, token: str) -> dict[str, Any]:
        if not self._jwt_secret:
            logger.warning("SUPABASE_JWT_SECRET not configured, cannot validate JWT")
            raise AuthenticationError("Invalid or expired token")
        try:
            return jwt.decode(
                token,
                self._jwt_secret,
                algorithms=["HS256"],
                audience=JWT_AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            raise AuthenticationError("Invalid or expired token")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {type(e).__name__}")
            raise AuthenticationError("Invalid or expired token")

    def require_user(self, authorization: Optional[str]) -> Identity:
        """Identity for a `Bearer <token>` header, else AuthenticationError."""
        if self._dev_bypass:
            return Identity(uid="dev-fallback", role="admin", email="dev@localhost")

        if not authorization:
            raise AuthenticationError("Authentication required")
        if not authorization.startswith("Bearer ") or not authorization[7:].strip():
            raise AuthenticationError("Invalid authorization header format")

        claims = self._decode(authorization[7:].strip())
        uid = claims.get("sub")
        if not uid:
            logger.warning("JWT token has no subject")
            raise AuthenticationError("Invalid or expired token")

        resolution = self._roles.resolve(uid, claims)
        if resolution is None:
            resolution = RoleResolution(role=DEFAULT_ROLE, email=claims.get("email"))

        logger.debug(f"Authenticated via JWT: subject={uid} role={resolution.role}")
        return Identity(uid=uid, role=resolution.role, email=resolution.email)

    def require_admin(self, authorization: Optional[str]) -> Identity:
        """As require_user, plus AuthorizationError for non-admins."""
        identity = self.require_user(authorization)
        if not identity.is_admin:
            logger.warning(f"Admin access denied for {identity.uid} (role={identity.role})")
            raise AuthorizationError("Forbidden")
        return identity


# =============================================================================
# FastAPI dependencies
# =============================================================================


def _guard(request: Request) -> AccessGuard:
    return request.app.state.services.access_guard


def current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Identity:
    """
    FastAPI dependency for any authenticated caller.

    Usage:
        @router.get("/orders")
        async def list_orders(user: Identity = Depends(current_user)):
            ...
    """
    return _guard(request).require_user(authorization)


def admin_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Identity:
    """FastAPI dependency for admin-only endpoints."""
    return _guard(request).require_admin(authorization)

"""Bearer-token authentication dependencies."""
import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.security import InvalidTokenError, decode_access_token
from db.session import get_async_session
from models.user import User, UserRole

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller, resolved from the database on each request.

    Handlers authorize against this snapshot instead of the token claims, so
    role, approval and quota changes apply to existing sessions.
    """

    user_id: int
    username: str
    role: str
    is_approved: bool
    max_bookmarks: int

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            user_id=user.id,
            username=user.username,
            role=user.role,
            is_approved=user.is_approved,
            max_bookmarks=user.max_bookmarks,
        )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_principal(
    token: str,
    db: AsyncSession,
    settings: Settings,
) -> Principal:
    try:
        user_id = decode_access_token(token, settings)
    except InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", e.reason)
        raise _unauthorized("Invalid or expired token")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    return Principal.from_user(user)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Dependency that requires a valid bearer token."""
    if credentials is None:
        raise _unauthorized("Not authenticated")
    return await _resolve_principal(credentials.credentials, db, settings)


async def get_optional_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> Principal | None:
    """
    Dependency for endpoints that also serve anonymous visitors.

    A missing token yields None; a present but invalid token is still a 401
    so clients notice expired sessions instead of silently losing access.
    """
    if credentials is None:
        return None
    return await _resolve_principal(credentials.credentials, db, settings)


async def get_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """Dependency that requires the admin role."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal

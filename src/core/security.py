"""Password hashing and session token signing."""
from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

from core.config import Settings

ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with, or expired."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(
    user_id: int,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign a session token for a user.

    The token carries only the user id (``sub``) and expiry. Role, approval
    and quota are re-read from the database on every request so admin changes
    take effect immediately.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> int:
    """
    Verify a session token and return the user id it was issued for.

    Raises:
        InvalidTokenError: If the signature, expiry or subject claim is invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("token has expired")
    except jwt.PyJWTError as e:
        raise InvalidTokenError(str(e))

    sub = payload.get("sub")
    if sub is None:
        raise InvalidTokenError("missing sub claim")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise InvalidTokenError("malformed sub claim")

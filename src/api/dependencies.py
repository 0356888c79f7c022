"""FastAPI dependencies for injection."""
from core.auth import (
    Principal,
    get_admin_principal,
    get_current_principal,
    get_optional_principal,
)
from core.config import get_settings
from db.session import get_async_session

__all__ = [
    "Principal",
    "get_admin_principal",
    "get_async_session",
    "get_current_principal",
    "get_optional_principal",
    "get_settings",
]

"""Registration, login and current-account endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_async_session, get_current_principal, get_settings
from core.config import Settings
from schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from services import user_service
from services.exceptions import DuplicateFieldError

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """
    Create an account.

    New accounts can log in immediately but must be approved by an admin
    before they can save bookmarks. Returns 409 if the username or email is
    already registered.
    """
    try:
        user = await user_service.register_user(db, data)
    except DuplicateFieldError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "duplicate_field", "field": e.field, "message": str(e)},
        ) from e
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    try:
        user, token = await user_service.authenticate_user(
            db, data.email, data.password, settings,
        )
    except user_service.InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Get the authenticated account."""
    user = await user_service.get_user(db, principal.user_id)
    return UserResponse.model_validate(user)

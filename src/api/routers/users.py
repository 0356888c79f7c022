"""Public profiles and self-service profile/preference endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Principal, get_async_session, get_current_principal
from schemas.user import (
    ProfileUpdate,
    PublicProfileResponse,
    SettingsResponse,
    SettingsUpdate,
    UserResponse,
)
from services import user_service
from services.exceptions import DuplicateFieldError

router = APIRouter(tags=["users"])


@router.get("/users/{username}", response_model=PublicProfileResponse)
async def get_public_profile(
    username: str,
    db: AsyncSession = Depends(get_async_session),
) -> PublicProfileResponse:
    """Public profile with bookmark, favorite and comment counts."""
    user = await user_service.get_user_by_username(db, username)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    stats = await user_service.get_user_stats(db, user.id)
    return PublicProfileResponse(
        id=user.id,
        username=user.username,
        bio=user.bio,
        website=user.website,
        twitter=user.twitter,
        github=user.github,
        is_approved=user.is_approved,
        created_at=user.created_at,
        stats=stats,
    )


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Get your own profile."""
    user = await user_service.get_user(db, principal.user_id)
    return UserResponse.model_validate(user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> UserResponse:
    """Update your profile. Returns 409 if the new username or email is taken."""
    try:
        user = await user_service.update_profile(db, principal.user_id, data)
    except DuplicateFieldError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "duplicate_field", "field": e.field, "message": str(e)},
        ) from e
    return UserResponse.model_validate(user)


@router.get("/settings", response_model=SettingsResponse)
async def get_settings_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> SettingsResponse:
    """Get your preferences."""
    user = await user_service.get_user(db, principal.user_id)
    return SettingsResponse.model_validate(user)


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    data: SettingsUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_async_session),
) -> SettingsResponse:
    """Update your preferences. Only the fields sent are changed."""
    user = await user_service.update_settings(db, principal.user_id, data)
    return SettingsResponse.model_validate(user)

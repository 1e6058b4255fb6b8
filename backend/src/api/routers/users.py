"""User endpoints: registration and the current user's profile."""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_user_listener
from core.user_cache import UserChangeListener
from models.user import User
from schemas.cached_user import CachedUser
from schemas.user import UserCreate, UserResponse, UserUpdate
from services import user_service
from services.exceptions import UserAlreadyExistsError


router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_async_session),
    listener: UserChangeListener = Depends(get_user_listener),
) -> User:
    """Register a new user."""
    try:
        return await user_service.create_user(db, data, listener)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CachedUser = Depends(get_current_user)) -> CachedUser:
    """Get the current authenticated user's info."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: CachedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    listener: UserChangeListener = Depends(get_user_listener),
) -> User:
    """Update the current user's profile. Evicts the cached user on change."""
    user = await user_service.update_user(db, current_user.id, data, listener)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    current_user: CachedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    listener: UserChangeListener = Depends(get_user_listener),
) -> Response:
    """Delete the current user's account. Evicts the cached user."""
    deleted = await user_service.delete_user(db, current_user.id, listener)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

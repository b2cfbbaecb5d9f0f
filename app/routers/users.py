"""
Users router — profile endpoints.

Endpoints:
  GET    /users/me    — Own profile (includes email)
  PUT    /users/me    — Update own profile fields
  DELETE /users/me    — Delete own account and everything it owns
  GET    /users/{id}  — Public profile (no email, no auth required)
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.user import PublicUserResponse, UserResponse, UserUpdateRequest
from app.services import user_service

router = APIRouter()


@router.get("/me", response_model=UserResponse, summary="Get your profile")
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.put("/me", response_model=UserResponse, summary="Update your profile")
async def update_me(
    updates: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the authenticated user's profile.

    Only fields the client sent are changed; email and password cannot be
    changed here.
    """
    changes = updates.model_dump(exclude_unset=True)
    if changes.get("full_name", "") is None:
        del changes["full_name"]  # bio and avatar_url can be cleared, the name can't

    return await user_service.update_profile(db, user, changes)


@router.delete("/me", summary="Delete your account")
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the account along with its skills, connections, wallet and history."""
    await user_service.delete_user(db, user.id)
    return {"ok": True, "message": "Account deleted successfully"}


@router.get("/{user_id}", response_model=PublicUserResponse, summary="Get a public profile")
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)

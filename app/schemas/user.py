"""
Pydantic schemas for user profiles.

hashed_password is NEVER included in any response schema. The public
profile also omits the email address.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class PublicUserResponse(BaseModel):
    """What anyone can see about a user."""
    id: uuid.UUID
    full_name: str
    bio: str | None
    avatar_url: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserResponse(PublicUserResponse):
    """The authenticated user's own profile."""
    email: str


class UserUpdateRequest(BaseModel):
    """Request body for PUT /users/me (all fields optional)."""
    full_name: str | None = Field(None, min_length=2, max_length=100)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, max_length=500, pattern=r"^https?://")

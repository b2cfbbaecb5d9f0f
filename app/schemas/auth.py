"""
Pydantic schemas for authentication endpoints (register, login, verify).

Pydantic validates incoming data automatically — if a required field is
missing or the wrong type, the request is rejected before our code runs.
"""

from pydantic import BaseModel, EmailStr, Field

from app.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=2, max_length=100)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """Response body for successful register/login — the JWT plus the profile."""
    token: str
    token_type: str = "bearer"
    user: UserResponse


class VerifyResponse(BaseModel):
    """Response body for POST /auth/verify."""
    valid: bool = True
    user: UserResponse

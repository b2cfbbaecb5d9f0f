"""
Authentication router — register, login and token verification.

Register and login are public; verify checks the bearer token it is given.

Endpoints:
  POST /auth/register  — Create a user and get a token
  POST /auth/login     — Authenticate and get a token
  POST /auth/verify    — Check a token and return its user

Plaintext passwords exist only in memory during request processing; they
are hashed before any database operation and never logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, VerifyResponse
from app.schemas.user import UserResponse
from app.services import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new user with an empty credit wallet.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **full_name**: 2-100 characters
    """
    user, token = await auth_service.register(
        db=db,
        email=request.email,
        password=request.password,
        full_name=request.full_name,
    )
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Include the returned token in the Authorization header of later requests:

        Authorization: Bearer <token>
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify a token",
)
async def verify(user: User = Depends(get_current_user)):
    """Return the token's user, or 401 if the token is invalid or expired."""
    return VerifyResponse(user=UserResponse.model_validate(user))

"""
Password hashing and access tokens.

Passwords:
  Hashed with Argon2id through passlib's CryptContext. The context is set
  to deprecated="auto", so hashes made with an older scheme are still
  verified and get replaced on the user's next login.

Access tokens:
  A signed JWT (HS256 with SECRET_KEY) whose only application claim is
  "sub", the user id. Tokens carry an "exp" and are not stored server-side;
  deleting a user is what revokes their tokens (the lookup then fails).
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a password against its stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, expires_delta: timedelta | None = None) -> str:
    """
    Issue a token for a user.

    Args:
        user_id: Stored as the "sub" claim.
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        JWTError: If the token is expired, tampered with, or malformed.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def token_subject(token: str) -> uuid.UUID:
    """
    The user id a valid token was issued for.

    Raises:
        JWTError: If the token is invalid or its "sub" is not a user id.
    """
    subject = decode_access_token(token).get("sub")
    try:
        return uuid.UUID(subject)
    except (TypeError, ValueError):
        raise JWTError("Token subject is not a user id")
